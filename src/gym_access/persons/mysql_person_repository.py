from __future__ import annotations

from typing import Optional

from ..core.enums import PersonStatus, PersonType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Person, SubjectRef
from .repository import PersonDirectory

# Table and key column per person variant; never built from user input.
_TABLES = {
    PersonType.MEMBER: ("members", "member_id"),
    PersonType.STAFF: ("staff", "staff_id"),
}


class MySQLPersonDirectory(PersonDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def lookup_person(self, subject: SubjectRef) -> Optional[Person]:
        table, id_col = _TABLES[subject.person_type]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT p.{id_col} AS person_id, p.branch_id, p.status, p.user_id,
                       u.first_name, u.last_name
                FROM {table} p
                LEFT JOIN users u ON u.user_id = p.user_id
                WHERE p.{id_col}=%s
                """,
                (int(subject.person_id),),
            )
            row = fetchone(cur)
            if not row:
                return None
            name = " ".join(x for x in (row.get("first_name"), row.get("last_name")) if x)
            return Person(
                person_id=int(row["person_id"]),
                person_type=subject.person_type,
                display_name=name or str(subject),
                branch_id=int(row["branch_id"]),
                status=PersonStatus(row["status"]),
                user_id=int(row["user_id"]) if row.get("user_id") is not None else None,
            )
