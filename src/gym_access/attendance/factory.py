from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .model import AttendanceRecord
from .states.base import AttendanceState
from .states.checked_in import CheckedInState
from .states.checked_out import CheckedOutState
from .states.no_record import NoRecordState


@dataclass
class AttendanceStateFactory:
    """Factory Pattern: pick the state handler for the subject's current record."""

    def for_record(self, current: Optional[AttendanceRecord]) -> AttendanceState:
        if current is None:
            return NoRecordState()
        if current.is_open:
            return CheckedInState()
        return CheckedOutState()
