from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ..persons.model import SubjectRef
from .factory import AttendanceStateFactory
from .model import AttendanceRecord, Transition


class AttendanceStateMachine:
    """NoRecord -> CheckedIn -> CheckedOut, per subject and work day.

    ``current`` is today's record, or a still-open record carried over from
    the previous local day.
    """

    def __init__(self, factory: AttendanceStateFactory | None = None):
        self._factory = factory or AttendanceStateFactory()

    def on_scan(
        self,
        current: Optional[AttendanceRecord],
        *,
        subject: SubjectRef,
        branch_id: int,
        work_date: date,
        now: datetime,
    ) -> Transition:
        state = self._factory.for_record(current)
        return state.on_scan(current, subject=subject, branch_id=branch_id, work_date=work_date, now=now)
