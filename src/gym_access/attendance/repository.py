from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import date
from typing import Optional, Protocol, Sequence

from ..access.model import BranchRestriction
from ..core.enums import ScanAction
from ..persons.model import SubjectRef
from ..qr.model import LedgerEntry
from ..qr.repository import NonceLedger
from .model import AttendanceRecord


class ScanTransaction(Protocol):
    """Writes of one scan; committed together or not at all."""

    def get_attendance_for_update(self, subject: SubjectRef, work_date: date) -> Optional[AttendanceRecord]:
        """Lock and return the (subject, work_date) row if it exists."""

        raise NotImplementedError

    def get_open_attendance_for_update(
        self, subject: SubjectRef, *, since: date, before: date
    ) -> Optional[AttendanceRecord]:
        """Lock and return the latest still-open row with since <= work_date < before."""

        raise NotImplementedError

    def insert_attendance(self, record: AttendanceRecord) -> int:
        raise NotImplementedError

    def complete_attendance(self, record: AttendanceRecord) -> bool:
        raise NotImplementedError

    def insert_ledger_entry(self, entry: LedgerEntry) -> int:
        """Claim the nonce; raises DuplicateNonceError when it was consumed before.

        Runs first in the scan transaction, so a concurrent scan of the same
        token blocks on the nonce key and fails as a replay.
        """

        raise NotImplementedError

    def record_ledger_action(self, entry_id: int, action: ScanAction) -> None:
        raise NotImplementedError


class ScanStore(NonceLedger, Protocol):
    """Shared, transactional store for the ledger and attendance rows."""

    def transaction(self) -> AbstractContextManager[ScanTransaction]:
        raise NotImplementedError

    def list_attendance(
        self,
        subject: SubjectRef,
        *,
        restriction: BranchRestriction,
        limit: int,
    ) -> Sequence[AttendanceRecord]:
        """Newest first, filtered to the caller's branch restriction."""

        raise NotImplementedError
