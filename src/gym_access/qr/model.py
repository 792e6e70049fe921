from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import to_iso
from ..core.enums import PersonType, ScanAction
from ..persons.model import Person, SubjectRef

_WIRE_SUBJECT_KEYS = {PersonType.MEMBER: "memberId", PersonType.STAFF: "staffId"}


@dataclass(frozen=True)
class QRToken:
    """Bearer ticket with a validity window; only persisted once consumed."""

    subject: SubjectRef
    issued_at: datetime
    expires_at: datetime
    nonce: str

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def to_payload(self) -> dict:
        return {
            _WIRE_SUBJECT_KEYS[self.subject.person_type]: self.subject.person_id,
            "issued_at": to_iso(self.issued_at),
            "expires_at": to_iso(self.expires_at),
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class ValidatedScan:
    token: QRToken
    person: Person


@dataclass(frozen=True)
class LedgerEntry:
    """Consumed nonce (table qr_checks). Append-only.

    ``action`` is None only between the nonce claim and the attendance write
    of the same transaction; committed rows always carry it.
    """

    nonce: str
    subject: SubjectRef
    branch_id: int
    issued_at: datetime
    expires_at: datetime
    scanned_at: datetime
    action: Optional[ScanAction]
    scanned_by_user_id: int
    entry_id: Optional[int] = None


@dataclass(frozen=True)
class ScanHistoryEntry:
    """Read-model for the front-desk "today" list."""

    entry_id: int
    action: ScanAction
    scanned_at: datetime
    person: dict
    scanner_name: Optional[str]

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "action": self.action.value,
            "scannedAt": to_iso(self.scanned_at),
            "person": dict(self.person),
            "scanner": self.scanner_name,
        }
