from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Optional

from ..common.datetime_utils import to_iso
from ..core.enums import AttendanceStatus, ScanAction
from ..persons.model import SubjectRef


@dataclass(frozen=True)
class AttendanceRecord:
    """Thực thể miền (domain): one row per (subject, work day).

    ``work_date`` is fixed at check-in; a session that ends after midnight
    stays on the check-in day.
    """

    subject: SubjectRef
    branch_id: int
    work_date: date
    check_in_time: datetime
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    attendance_id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None

    @property
    def total_duration(self) -> Optional[timedelta]:
        if self.check_out_time is None:
            return None
        return self.check_out_time - self.check_in_time

    def with_id(self, attendance_id: int) -> "AttendanceRecord":
        return replace(self, attendance_id=int(attendance_id))

    def to_dict(self) -> dict:
        duration = self.total_duration
        return {
            "id": self.attendance_id,
            "personId": self.subject.person_id,
            "personType": self.subject.person_type.value,
            "branchId": self.branch_id,
            "date": self.work_date.isoformat(),
            "checkInTime": to_iso(self.check_in_time),
            "checkOutTime": to_iso(self.check_out_time) if self.check_out_time else None,
            "status": self.status.value,
            "totalHours": round(duration.total_seconds() / 3600, 2) if duration is not None else None,
        }


@dataclass(frozen=True)
class Transition:
    """Result of feeding one scan into the daily state machine."""

    action: ScanAction
    record: AttendanceRecord
    created: bool
