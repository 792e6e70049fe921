"""Structural parsing of QR token payloads.

Runs before any lookup: anything that is not a well-formed payload is
rejected here with MalformedTokenError.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any, Union

from ..common.datetime_utils import parse_iso_datetime
from ..common.validators import require_positive_int
from ..core.constants import MAX_NONCE_LENGTH, MAX_PAYLOAD_BYTES
from ..core.enums import PersonType
from ..core.exceptions import MalformedTokenError, ValidationError
from ..persons.model import SubjectRef
from .model import QRToken

RawPayload = Union[str, bytes, Mapping[str, Any]]

SUBJECT_KEYS = {
    "memberId": PersonType.MEMBER,
    "member_id": PersonType.MEMBER,
    "staffId": PersonType.STAFF,
    "staff_id": PersonType.STAFF,
}

_NONCE_RE = re.compile(r"[\x21-\x7e]{1,%d}" % MAX_NONCE_LENGTH)


def _load(raw: RawPayload) -> Mapping[str, Any]:
    if isinstance(raw, Mapping):
        # Measured as its JSON text, same limit as string payloads.
        if len(json.dumps(dict(raw), default=str).encode("utf-8")) > MAX_PAYLOAD_BYTES:
            raise MalformedTokenError("QR data too large")
        return raw
    if isinstance(raw, bytes):
        if len(raw) > MAX_PAYLOAD_BYTES:
            raise MalformedTokenError("QR data too large")
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedTokenError() from None
    if not isinstance(raw, str):
        raise MalformedTokenError()
    if len(raw.encode("utf-8")) > MAX_PAYLOAD_BYTES:
        raise MalformedTokenError("QR data too large")
    try:
        data = json.loads(raw)
    except ValueError:
        raise MalformedTokenError() from None
    if not isinstance(data, dict):
        raise MalformedTokenError()
    return data


def _subject(data: Mapping[str, Any]) -> SubjectRef:
    present = [k for k in SUBJECT_KEYS if data.get(k) is not None]
    if len(present) != 1:
        raise MalformedTokenError("QR data must reference exactly one member or staff")
    key = present[0]
    try:
        person_id = require_positive_int(data[key], key)
    except ValidationError as exc:
        raise MalformedTokenError(str(exc)) from None
    return SubjectRef(SUBJECT_KEYS[key], person_id)


def _timestamp(data: Mapping[str, Any], key: str):
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise MalformedTokenError(f"{key} is required")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise MalformedTokenError(f"{key} is not an ISO-8601 timestamp") from None


def parse_token_payload(raw: RawPayload) -> QRToken:
    data = _load(raw)
    subject = _subject(data)
    issued_at = _timestamp(data, "issued_at")
    expires_at = _timestamp(data, "expires_at")
    if expires_at < issued_at:
        raise MalformedTokenError("expires_at precedes issued_at")

    nonce = data.get("nonce")
    if not isinstance(nonce, str) or not _NONCE_RE.fullmatch(nonce):
        raise MalformedTokenError("nonce is missing or invalid")

    return QRToken(subject=subject, issued_at=issued_at, expires_at=expires_at, nonce=nonce)
