from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from ...core.enums import AttendanceStatus, ScanAction
from ...core.exceptions import InvalidTransitionError
from ...persons.model import SubjectRef
from ..model import AttendanceRecord, Transition
from .base import AttendanceState


class CheckedInState(AttendanceState):
    """Open session: the scan closes it."""

    def on_scan(
        self,
        current: Optional[AttendanceRecord],
        *,
        subject: SubjectRef,
        branch_id: int,
        work_date: date,
        now: datetime,
    ) -> Transition:
        if now < current.check_in_time:
            raise InvalidTransitionError("Check-out time precedes check-in time")

        # work_date stays as created, even past midnight
        record = replace(current, check_out_time=now, status=AttendanceStatus.COMPLETED)
        return Transition(action=ScanAction.CHECKOUT, record=record, created=False)
