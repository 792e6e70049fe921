from __future__ import annotations

import itertools
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

import pytest

from gym_access.access.model import BranchOnly, IdentityContext
from gym_access.attendance.model import AttendanceRecord
from gym_access.branches.model import Branch
from gym_access.common.datetime_utils import to_iso
from gym_access.container import assemble
from gym_access.core.enums import PersonStatus, PersonType, Role
from gym_access.core.exceptions import ConcurrentScanError, DuplicateNonceError, StoreUnavailableError
from gym_access.persons.model import Person, SubjectRef
from gym_access.qr.model import LedgerEntry, ScanHistoryEntry


@dataclass
class InMemoryBranches:
    branches: dict[int, Branch]

    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        return self.branches.get(int(branch_id))


@dataclass
class InMemoryPersons:
    persons: dict[SubjectRef, Person]

    def lookup_person(self, subject: SubjectRef) -> Optional[Person]:
        return self.persons.get(subject)


class InMemoryScanTransaction:
    def __init__(self, store: "InMemoryScanStore"):
        self._store = store
        self.new_attendance: list[AttendanceRecord] = []
        self.completed: list[AttendanceRecord] = []
        self.ledger: dict[int, LedgerEntry] = {}

    def get_attendance_for_update(self, subject, work_date):
        return self._store.attendance.get((subject, work_date))

    def get_open_attendance_for_update(self, subject, *, since, before):
        rows = [
            r
            for (s, d), r in self._store.attendance.items()
            if s == subject and since <= d < before and r.is_open
        ]
        rows.sort(key=lambda r: r.work_date, reverse=True)
        return rows[0] if rows else None

    def insert_attendance(self, record):
        if self._store.fail_on == "attendance":
            raise StoreUnavailableError()
        if (record.subject, record.work_date) in self._store.attendance:
            raise ConcurrentScanError()
        self.new_attendance.append(record)
        return 0

    def complete_attendance(self, record):
        if self._store.fail_on == "attendance":
            raise StoreUnavailableError()
        current = self._store.attendance.get((record.subject, record.work_date))
        if current is None or not current.is_open:
            return False
        self.completed.append(record)
        return True

    def insert_ledger_entry(self, entry):
        if self._store.fail_on == "ledger":
            raise StoreUnavailableError()
        if entry.nonce in self._store.ledger or any(e.nonce == entry.nonce for e in self.ledger.values()):
            raise DuplicateNonceError()
        entry_id = next(self._store._ids)
        self.ledger[entry_id] = replace(entry, entry_id=entry_id)
        return entry_id

    def record_ledger_action(self, entry_id, action):
        self.ledger[entry_id] = replace(self.ledger[entry_id], action=action)

    def apply(self) -> None:
        for rec in self.new_attendance:
            self._store.attendance[(rec.subject, rec.work_date)] = rec.with_id(next(self._store._ids))
        for rec in self.completed:
            self._store.attendance[(rec.subject, rec.work_date)] = rec
        for entry in self.ledger.values():
            self._store.ledger[entry.nonce] = entry


class InMemoryScanStore:
    """Emulates the MySQL store: unique nonce, serialized transactions, rollback on error."""

    def __init__(self, persons: InMemoryPersons, scanner_names: dict[int, str]):
        self.attendance: dict[tuple[SubjectRef, date], AttendanceRecord] = {}
        self.ledger: dict[str, LedgerEntry] = {}
        self.fail_on: Optional[str] = None
        self.after_nonce_check: Optional[Callable[[], None]] = None
        self._persons = persons
        self._scanner_names = scanner_names
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    @contextmanager
    def transaction(self):
        with self._lock:
            tx = InMemoryScanTransaction(self)
            yield tx
            tx.apply()

    def nonce_exists(self, nonce: str) -> bool:
        hit = nonce in self.ledger
        if self.after_nonce_check:
            self.after_nonce_check()
        return hit

    def list_scans(self, *, branch_id, start, end):
        out = []
        for e in self.ledger.values():
            if e.branch_id != branch_id or not (start <= e.scanned_at < end):
                continue
            person = self._persons.lookup_person(e.subject)
            out.append(
                ScanHistoryEntry(
                    entry_id=e.entry_id,
                    action=e.action,
                    scanned_at=e.scanned_at,
                    person={"id": e.subject.person_id, "name": person.display_name, "type": e.subject.person_type.value},
                    scanner_name=self._scanner_names.get(e.scanned_by_user_id),
                )
            )
        out.sort(key=lambda h: h.scanned_at, reverse=True)
        return out

    def list_attendance(self, subject, *, restriction, limit):
        rows = [r for (s, _), r in self.attendance.items() if s == subject]
        if isinstance(restriction, BranchOnly):
            rows = [r for r in rows if r.branch_id == restriction.branch_id]
        rows.sort(key=lambda r: r.work_date, reverse=True)
        return rows[:limit]


MEMBER_1 = SubjectRef(PersonType.MEMBER, 1)
MEMBER_2 = SubjectRef(PersonType.MEMBER, 2)
MEMBER_INACTIVE = SubjectRef(PersonType.MEMBER, 3)
MEMBER_SAIGON = SubjectRef(PersonType.MEMBER, 4)
STAFF_1 = SubjectRef(PersonType.STAFF, 1)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 2, 1, 8, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def branches() -> InMemoryBranches:
    return InMemoryBranches(
        {
            1: Branch(branch_id=1, name="Downtown", timezone="UTC"),
            2: Branch(branch_id=2, name="Riverside", timezone="UTC"),
            3: Branch(branch_id=3, name="Saigon", timezone="Asia/Ho_Chi_Minh"),
        }
    )


@pytest.fixture
def persons() -> InMemoryPersons:
    people = [
        Person(1, PersonType.MEMBER, "An Nguyen", 1, PersonStatus.ACTIVE, user_id=5),
        Person(2, PersonType.MEMBER, "Bao Vo", 2, PersonStatus.ACTIVE, user_id=6),
        Person(3, PersonType.MEMBER, "Chi Ho", 1, PersonStatus.INACTIVE, user_id=8),
        Person(4, PersonType.MEMBER, "Dung Ly", 3, PersonStatus.ACTIVE, user_id=9),
        Person(1, PersonType.STAFF, "Minh Le", 1, PersonStatus.ACTIVE, user_id=3),
    ]
    return InMemoryPersons({p.ref: p for p in people})


@pytest.fixture
def store(persons) -> InMemoryScanStore:
    return InMemoryScanStore(persons, {1: "Super Admin", 2: "Linh Tran", 3: "Minh Le", 4: "Hoa Pham"})


@pytest.fixture
def container(store, persons, branches):
    return assemble(scan_store=store, persons=persons, branches=branches)


@dataclass(frozen=True)
class Identities:
    super: IdentityContext = IdentityContext(user_id=1, role=Role.SUPER, branch_id=None)
    admin1: IdentityContext = IdentityContext(user_id=2, role=Role.BRANCH_ADMIN, branch_id=1)
    desk1: IdentityContext = IdentityContext(user_id=3, role=Role.FRONT_DESK, branch_id=1)
    desk2: IdentityContext = IdentityContext(user_id=4, role=Role.FRONT_DESK, branch_id=2)
    desk3: IdentityContext = IdentityContext(user_id=10, role=Role.FRONT_DESK, branch_id=3)
    member1: IdentityContext = IdentityContext(user_id=5, role=Role.MEMBER, branch_id=1)
    trainer1: IdentityContext = IdentityContext(user_id=7, role=Role.TRAINER, branch_id=1)


@pytest.fixture
def ids() -> Identities:
    return Identities()


@dataclass
class TokenFactory:
    now: datetime
    _seq: itertools.count = field(default_factory=lambda: itertools.count(1))

    def __call__(
        self,
        subject: SubjectRef = MEMBER_1,
        *,
        issued_at: Optional[datetime] = None,
        ttl: timedelta = timedelta(seconds=60),
        nonce: Optional[str] = None,
    ) -> dict:
        issued_at = issued_at or self.now - timedelta(seconds=5)
        key = "memberId" if subject.person_type == PersonType.MEMBER else "staffId"
        return {
            key: subject.person_id,
            "issued_at": to_iso(issued_at),
            "expires_at": to_iso(issued_at + ttl),
            "nonce": nonce or f"nonce-{next(self._seq)}",
        }


@pytest.fixture
def make_token(fixed_now) -> TokenFactory:
    return TokenFactory(fixed_now)
