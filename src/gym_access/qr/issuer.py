from __future__ import annotations

import io
import json
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

import qrcode
from qrcode.image.pil import PilImage

from ..access.engine import AuthorizationEngine
from ..access.model import IdentityContext
from ..common.datetime_utils import utc_now
from ..core.constants import DEFAULT_QR_TOKEN_TTL_SECONDS, NONCE_BYTES
from ..core.enums import Operation
from ..core.exceptions import NotFoundError, SubjectInactiveError
from ..persons.model import SubjectRef
from ..persons.repository import PersonDirectory
from .model import QRToken

logger = logging.getLogger(__name__)


class QRTokenIssuer:
    """Use case: hand out a fresh single-use token for a member or staff person."""

    def __init__(
        self,
        persons: PersonDirectory,
        authz: AuthorizationEngine,
        *,
        ttl_seconds: int = DEFAULT_QR_TOKEN_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._persons = persons
        self._authz = authz
        self._ttl = timedelta(seconds=int(ttl_seconds))
        self._clock = clock

    def issue(self, subject: SubjectRef, identity: IdentityContext, *, now: Optional[datetime] = None) -> QRToken:
        scope = self._authz.resolve_scope(identity)

        person = self._persons.lookup_person(subject)
        if person is None:
            raise NotFoundError("Person not found")
        self._authz.authorize_person(
            scope, person, Operation.ISSUE_QR_TOKEN, own_operation=Operation.ISSUE_OWN_QR_TOKEN
        )
        if not person.is_active:
            raise SubjectInactiveError()

        now = now or self._clock()
        token = QRToken(
            subject=subject,
            issued_at=now,
            expires_at=now + self._ttl,
            nonce=secrets.token_urlsafe(NONCE_BYTES),
        )
        logger.info("QR token issued: %s by user_id=%s, expires=%s", subject, identity.user_id, token.expires_at)
        return token

    @staticmethod
    def render_png(token: QRToken) -> bytes:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=2,
        )
        qr.add_data(json.dumps(token.to_payload(), separators=(",", ":")))
        qr.make(fit=True)

        img = qr.make_image(image_factory=PilImage, fill_color="black", back_color="white")

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()
