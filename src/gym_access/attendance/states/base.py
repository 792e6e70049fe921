from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Optional

from ...persons.model import SubjectRef
from ..model import AttendanceRecord, Transition


class AttendanceState(ABC):
    """State Pattern: how a scan is handled given the subject's current record."""

    @abstractmethod
    def on_scan(
        self,
        current: Optional[AttendanceRecord],
        *,
        subject: SubjectRef,
        branch_id: int,
        work_date: date,
        now: datetime,
    ) -> Transition:
        raise NotImplementedError
