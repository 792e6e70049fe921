from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..access.engine import AuthorizationEngine
from ..access.model import IdentityContext
from ..attendance.model import AttendanceRecord
from ..attendance.repository import ScanStore
from ..branches.service import BranchCalendar
from ..common.datetime_utils import utc_now
from ..common.validators import require_positive_int
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import Operation, PersonType
from ..core.exceptions import NotFoundError, ValidationError
from ..persons.model import SubjectRef
from ..persons.repository import PersonDirectory
from ..qr.model import ScanHistoryEntry

logger = logging.getLogger(__name__)


class HistoryReader:
    """Read-only projections over the ledger and attendance rows."""

    def __init__(
        self,
        store: ScanStore,
        persons: PersonDirectory,
        authz: AuthorizationEngine,
        calendar: BranchCalendar,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._persons = persons
        self._authz = authz
        self._calendar = calendar
        self._clock = clock

    def get_today_history(
        self, branch_id: int, identity: IdentityContext, *, now: Optional[datetime] = None
    ) -> Sequence[ScanHistoryEntry]:
        """Scans recorded today (branch-local day) at ``branch_id``, newest first."""
        scope = self._authz.resolve_scope(identity)
        self._authz.require(scope, Operation.VIEW_SCAN_HISTORY)
        branch_id = require_positive_int(branch_id, "branchId")
        self._authz.require_branch(scope, branch_id)

        now = now or self._clock()
        start, end = self._calendar.day_bounds(branch_id, self._calendar.day_of(branch_id, now))
        return list(self._store.list_scans(branch_id=branch_id, start=start, end=end))

    def get_attendance_history(
        self,
        person_id: int,
        person_type: PersonType | str,
        identity: IdentityContext,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceRecord]:
        scope = self._authz.resolve_scope(identity)
        try:
            subject = SubjectRef(PersonType(person_type), require_positive_int(person_id, "personId"))
        except ValueError:
            raise ValidationError("personType must be 'member' or 'staff'") from None

        person = self._persons.lookup_person(subject)
        if person is None:
            raise NotFoundError("Person not found")
        self._authz.authorize_person(
            scope, person, Operation.VIEW_ATTENDANCE_HISTORY, own_operation=Operation.VIEW_OWN_ATTENDANCE
        )

        return list(self._store.list_attendance(subject, restriction=scope.restriction, limit=limit))
