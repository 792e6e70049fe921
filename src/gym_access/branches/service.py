from __future__ import annotations

from datetime import date, datetime, tzinfo

from ..common.datetime_utils import local_day, local_day_bounds, resolve_timezone
from ..core.constants import DEFAULT_TIMEZONE
from .repository import BranchDirectory


class BranchCalendar:
    """Branch-local calendar days ("today" is the branch's wall-clock day)."""

    def __init__(self, branches: BranchDirectory, *, default_timezone: str = DEFAULT_TIMEZONE):
        self._branches = branches
        self._default_timezone = default_timezone

    def timezone_for(self, branch_id: int) -> tzinfo:
        branch = self._branches.get_by_id(branch_id)
        return resolve_timezone(branch.timezone if branch else None, default=self._default_timezone)

    def day_of(self, branch_id: int, moment: datetime) -> date:
        return local_day(moment, self.timezone_for(branch_id))

    def day_bounds(self, branch_id: int, day: date) -> tuple[datetime, datetime]:
        return local_day_bounds(day, self.timezone_for(branch_id))
