from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ...core.exceptions import InvalidTransitionError
from ...persons.model import SubjectRef
from ..model import AttendanceRecord, Transition
from .base import AttendanceState


class CheckedOutState(AttendanceState):
    """Terminal for the day."""

    def on_scan(
        self,
        current: Optional[AttendanceRecord],
        *,
        subject: SubjectRef,
        branch_id: int,
        work_date: date,
        now: datetime,
    ) -> Transition:
        raise InvalidTransitionError("Already checked out for today")
