from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, Optional, Sequence

from ..access.model import BranchRestriction, BranchOnly
from ..core.enums import AttendanceStatus, PersonType, ScanAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_utc, db_cursor, db_transaction, fetchall, fetchone, to_db_datetime
from ..persons.model import SubjectRef
from ..qr.model import LedgerEntry, ScanHistoryEntry
from .model import AttendanceRecord
from .repository import ScanStore, ScanTransaction

_ATTENDANCE_COLUMNS = (
    "attendance_id, person_type, person_id, branch_id, work_date, check_in_time, check_out_time, status"
)


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        subject=SubjectRef(PersonType(r["person_type"]), int(r["person_id"])),
        branch_id=int(r["branch_id"]),
        work_date=r["work_date"],
        check_in_time=as_utc(r["check_in_time"]),
        check_out_time=as_utc(r.get("check_out_time")),
        status=AttendanceStatus(r["status"]),
    )


class MySQLScanTransaction(ScanTransaction):
    def __init__(self, cur):
        self._cur = cur

    def get_attendance_for_update(self, subject: SubjectRef, work_date: date) -> Optional[AttendanceRecord]:
        self._cur.execute(
            f"""
            SELECT {_ATTENDANCE_COLUMNS}
            FROM attendance_records
            WHERE person_type=%s AND person_id=%s AND work_date=%s
            FOR UPDATE
            """,
            (subject.person_type.value, subject.person_id, work_date),
        )
        r = fetchone(self._cur)
        return _row_to_record(r) if r else None

    def get_open_attendance_for_update(
        self, subject: SubjectRef, *, since: date, before: date
    ) -> Optional[AttendanceRecord]:
        self._cur.execute(
            f"""
            SELECT {_ATTENDANCE_COLUMNS}
            FROM attendance_records
            WHERE person_type=%s AND person_id=%s
              AND work_date >= %s AND work_date < %s
              AND check_out_time IS NULL
            ORDER BY work_date DESC
            LIMIT 1
            FOR UPDATE
            """,
            (subject.person_type.value, subject.person_id, since, before),
        )
        r = fetchone(self._cur)
        return _row_to_record(r) if r else None

    def insert_attendance(self, record: AttendanceRecord) -> int:
        self._cur.execute(
            """
            INSERT INTO attendance_records(person_type, person_id, branch_id, work_date, check_in_time, status)
            VALUES(%s,%s,%s,%s,%s,%s)
            """,
            (
                record.subject.person_type.value,
                record.subject.person_id,
                record.branch_id,
                record.work_date,
                to_db_datetime(record.check_in_time),
                record.status.value,
            ),
        )
        return int(self._cur.lastrowid)

    def complete_attendance(self, record: AttendanceRecord) -> bool:
        # Guarded by check_out_time IS NULL: a completed row is never rewritten.
        self._cur.execute(
            """
            UPDATE attendance_records
            SET check_out_time=%s, status=%s
            WHERE attendance_id=%s AND check_out_time IS NULL
            """,
            (to_db_datetime(record.check_out_time), record.status.value, int(record.attendance_id)),
        )
        return self._cur.rowcount > 0

    def insert_ledger_entry(self, entry: LedgerEntry) -> int:
        self._cur.execute(
            """
            INSERT INTO qr_checks(nonce, person_type, person_id, branch_id,
                                  issued_at, expires_at, scanned_at, action, scanned_by)
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                entry.nonce,
                entry.subject.person_type.value,
                entry.subject.person_id,
                entry.branch_id,
                to_db_datetime(entry.issued_at),
                to_db_datetime(entry.expires_at),
                to_db_datetime(entry.scanned_at),
                entry.action.value if entry.action else None,
                entry.scanned_by_user_id,
            ),
        )
        return int(self._cur.lastrowid)

    def record_ledger_action(self, entry_id: int, action: ScanAction) -> None:
        self._cur.execute(
            "UPDATE qr_checks SET action=%s WHERE qr_check_id=%s",
            (action.value, int(entry_id)),
        )


class MySQLScanStore(ScanStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def transaction(self) -> Iterator[MySQLScanTransaction]:
        with db_transaction(self._conn_factory) as cur:
            yield MySQLScanTransaction(cur)

    def nonce_exists(self, nonce: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS hit FROM qr_checks WHERE nonce=%s", (nonce,))
            return fetchone(cur) is not None

    def list_scans(self, *, branch_id: int, start: datetime, end: datetime) -> Sequence[ScanHistoryEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT q.qr_check_id, q.action, q.scanned_at, q.person_type, q.person_id,
                       pu.first_name AS person_first, pu.last_name AS person_last,
                       su.first_name AS scanner_first, su.last_name AS scanner_last
                FROM qr_checks q
                LEFT JOIN members m ON q.person_type='member' AND m.member_id = q.person_id
                LEFT JOIN staff s ON q.person_type='staff' AND s.staff_id = q.person_id
                LEFT JOIN users pu ON pu.user_id = COALESCE(m.user_id, s.user_id)
                LEFT JOIN users su ON su.user_id = q.scanned_by
                WHERE q.branch_id=%s AND q.scanned_at >= %s AND q.scanned_at < %s
                ORDER BY q.scanned_at DESC
                """,
                (int(branch_id), to_db_datetime(start), to_db_datetime(end)),
            )
            rows = fetchall(cur)

        out: list[ScanHistoryEntry] = []
        for r in rows:
            person_name = " ".join(x for x in (r.get("person_first"), r.get("person_last")) if x)
            scanner_name = " ".join(x for x in (r.get("scanner_first"), r.get("scanner_last")) if x)
            out.append(
                ScanHistoryEntry(
                    entry_id=int(r["qr_check_id"]),
                    action=ScanAction(r["action"]),
                    scanned_at=as_utc(r["scanned_at"]),
                    person={"id": int(r["person_id"]), "name": person_name or None, "type": r["person_type"]},
                    scanner_name=scanner_name or None,
                )
            )
        return out

    def list_attendance(
        self,
        subject: SubjectRef,
        *,
        restriction: BranchRestriction,
        limit: int,
    ) -> Sequence[AttendanceRecord]:
        clauses = ["person_type=%s", "person_id=%s"]
        params: list[object] = [subject.person_type.value, subject.person_id]

        if isinstance(restriction, BranchOnly):
            clauses.append("branch_id=%s")
            params.append(restriction.branch_id)
        params.append(int(limit))

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ATTENDANCE_COLUMNS}
                FROM attendance_records
                WHERE {where}
                ORDER BY work_date DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_row_to_record(r) for r in fetchall(cur)]
