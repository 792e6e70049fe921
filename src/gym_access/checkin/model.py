from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import to_iso
from ..core.enums import ErrorKind, ScanAction
from ..core.exceptions import DomainError


@dataclass(frozen=True)
class ScanOutcome:
    """Single structured result of a scan, success or typed failure."""

    ok: bool
    timestamp: datetime
    action: Optional[ScanAction] = None
    person: dict = field(default_factory=dict)
    error: Optional[ErrorKind] = None
    message: str = ""
    retryable: bool = False

    @classmethod
    def success(cls, *, action: ScanAction, person: dict, timestamp: datetime) -> "ScanOutcome":
        verb = "checked in" if action == ScanAction.CHECKIN else "checked out"
        return cls(
            ok=True,
            timestamp=timestamp,
            action=action,
            person=dict(person),
            message=f"Successfully {verb} {person.get('name')}",
        )

    @classmethod
    def failure(cls, exc: DomainError, *, timestamp: datetime) -> "ScanOutcome":
        return cls(ok=False, timestamp=timestamp, error=exc.kind, message=exc.message, retryable=exc.retryable)

    def to_dict(self) -> dict:
        if self.ok:
            return {
                "success": True,
                "message": self.message,
                "data": {
                    "action": self.action.value,
                    "person": dict(self.person),
                    "timestamp": to_iso(self.timestamp),
                },
            }
        return {
            "success": False,
            "error": self.error.value,
            "message": self.message,
            "retryable": self.retryable,
        }
