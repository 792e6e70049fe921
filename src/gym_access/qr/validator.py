from __future__ import annotations

import logging
from datetime import datetime

from ..access.engine import AuthorizationEngine
from ..access.model import AccessScope
from ..core.exceptions import (
    BranchMismatchError,
    SubjectInactiveError,
    SubjectNotFoundError,
    TokenAlreadyUsedError,
    TokenExpiredError,
)
from ..persons.repository import PersonDirectory
from .model import ValidatedScan
from .repository import NonceLedger
from .token import RawPayload, parse_token_payload

logger = logging.getLogger(__name__)


class QRTokenValidator:
    """Decide whether a presented token may be consumed.

    Checks run in a fixed order and stop at the first failure: structure,
    expiry, replay, subject lookup, subject status, branch. Nothing is written
    here; the nonce is only burned by the orchestrator after a successful
    state transition.
    """

    def __init__(self, ledger: NonceLedger, persons: PersonDirectory, authz: AuthorizationEngine):
        self._ledger = ledger
        self._persons = persons
        self._authz = authz

    def validate(self, raw: RawPayload, scope: AccessScope, *, now: datetime) -> ValidatedScan:
        token = parse_token_payload(raw)

        if token.is_expired(now):
            logger.warning(
                "QR code expired: nonce=%s, issued=%s, expires=%s", token.nonce, token.issued_at, token.expires_at
            )
            raise TokenExpiredError()

        if self._ledger.nonce_exists(token.nonce):
            logger.warning("QR code nonce already used: nonce=%s, scanner=%s", token.nonce, scope.user_id)
            raise TokenAlreadyUsedError()

        person = self._persons.lookup_person(token.subject)
        if person is None:
            logger.warning("Person not found: %s", token.subject)
            raise SubjectNotFoundError()

        if not person.is_active:
            logger.warning("Person not active: %s, status=%s", token.subject, person.status.value)
            raise SubjectInactiveError()

        if not self._authz.can_access_branch(scope, person.branch_id):
            logger.warning("Branch mismatch: person_branch=%s, scanner_branch=%s", person.branch_id, scope.branch_id)
            raise BranchMismatchError()

        return ValidatedScan(token=token, person=person)
