from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import (
    ConcurrentScanError,
    DomainError,
    DuplicateNonceError,
    InfrastructureError,
    StoreUnavailableError,
    TransactionTimeoutError,
)
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

NONCE_UNIQUE_KEY = "uq_qr_checks_nonce"
ATTENDANCE_UNIQUE_KEY = "uq_attendance_subject_day"


def translate_mysql_error(exc: mysql.connector.Error) -> DomainError:
    """Map driver errors onto the domain taxonomy.

    Only the nonce uniqueness violation is an expected outcome (replay);
    everything else is an infrastructure failure the caller may retry.
    """
    errno = getattr(exc, "errno", None)
    msg = str(getattr(exc, "msg", "") or exc)

    if errno == errorcode.ER_DUP_ENTRY:
        if NONCE_UNIQUE_KEY in msg:
            return DuplicateNonceError()
        if ATTENDANCE_UNIQUE_KEY in msg:
            return ConcurrentScanError()
        return InfrastructureError("Unexpected constraint violation")

    if errno in (errorcode.ER_LOCK_WAIT_TIMEOUT, errorcode.ER_LOCK_DEADLOCK):
        return TransactionTimeoutError()

    return StoreUnavailableError()


def _rollback_quietly(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error:
        logger.warning("Rollback failed; connection will be discarded", exc_info=True)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        logger.error("Database connection failed: %s", exc)
        raise translate_mysql_error(exc) from exc
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        _rollback_quietly(conn)
        raise translate_mysql_error(exc) from exc
    except Exception:
        _rollback_quietly(conn)
        raise
    finally:
        conn.close()


@contextmanager
def db_transaction(conn_factory: DatabaseConnection) -> Iterator[Any]:
    """One READ COMMITTED transaction with a bounded lock wait.

    Commits when the block exits normally; any exception rolls back every
    statement of the block.
    """
    with db_cursor(conn_factory) as (conn, cur):
        cur.execute("SET SESSION innodb_lock_wait_timeout = %s", (conn_factory.lock_wait_timeout,))
        conn.start_transaction(isolation_level="READ COMMITTED")
        yield cur


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """DATETIME columns hold naive UTC; hand back aware values."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db_datetime(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Normalize MySQL TIME values across connector implementations.

    mysql-connector can return TIME as:
    - datetime.time
    - datetime.timedelta
    - string (e.g. '08:30:00')
    """

    if value is None:
        return None

    if isinstance(value, time):
        return value

    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds()) % 86400
        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        seconds = total_seconds % 60
        return time(hour=hours, minute=minutes, second=seconds)

    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
        return time(hour=hours, minute=minutes, second=seconds)

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
