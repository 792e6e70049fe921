from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ...core.enums import AttendanceStatus, ScanAction
from ...persons.model import SubjectRef
from ..model import AttendanceRecord, Transition
from .base import AttendanceState


class NoRecordState(AttendanceState):
    """First scan of the day."""

    def on_scan(
        self,
        current: Optional[AttendanceRecord],
        *,
        subject: SubjectRef,
        branch_id: int,
        work_date: date,
        now: datetime,
    ) -> Transition:
        record = AttendanceRecord(
            subject=subject,
            branch_id=branch_id,
            work_date=work_date,
            check_in_time=now,
            check_out_time=None,
            status=AttendanceStatus.ACTIVE,
        )
        return Transition(action=ScanAction.CHECKIN, record=record, created=True)
