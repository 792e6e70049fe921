from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, normalize_mysql_time
from .model import Branch
from .repository import BranchDirectory


class MySQLBranchDirectory(BranchDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT branch_id, name, timezone, opens_at, closes_at, is_active
                FROM branches
                WHERE branch_id=%s
                """,
                (int(branch_id),),
            )
            row = fetchone(cur)
            if not row:
                return None
            return Branch(
                branch_id=int(row["branch_id"]),
                name=row["name"],
                timezone=row.get("timezone") or "UTC",
                opens_at=normalize_mysql_time(row.get("opens_at")),
                closes_at=normalize_mysql_time(row.get("closes_at")),
                is_active=bool(row.get("is_active", True)),
            )
