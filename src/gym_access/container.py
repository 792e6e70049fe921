from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .access.engine import AuthorizationEngine
from .attendance.mysql_scan_store import MySQLScanStore
from .attendance.repository import ScanStore
from .branches.mysql_branch_repository import MySQLBranchDirectory
from .branches.repository import BranchDirectory
from .branches.service import BranchCalendar
from .checkin.orchestrator import CheckInOrchestrator
from .core.constants import DEFAULT_QR_TOKEN_TTL_SECONDS, DEFAULT_TIMEZONE
from .database.bootstrap import db_config_from_dict
from .database.connection import DatabaseConnection
from .history.service import HistoryReader
from .persons.mysql_person_repository import MySQLPersonDirectory
from .persons.repository import PersonDirectory
from .qr.issuer import QRTokenIssuer
from .qr.validator import QRTokenValidator


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    scan_store: ScanStore
    persons: PersonDirectory
    branches: BranchDirectory

    authz: AuthorizationEngine
    calendar: BranchCalendar
    validator: QRTokenValidator
    orchestrator: CheckInOrchestrator
    history: HistoryReader
    issuer: QRTokenIssuer


def assemble(
    *,
    scan_store: ScanStore,
    persons: PersonDirectory,
    branches: BranchDirectory,
    conn: Optional[DatabaseConnection] = None,
    qr_token_ttl_seconds: int = DEFAULT_QR_TOKEN_TTL_SECONDS,
    default_timezone: str = DEFAULT_TIMEZONE,
) -> Container:
    authz = AuthorizationEngine()
    calendar = BranchCalendar(branches, default_timezone=default_timezone)
    validator = QRTokenValidator(scan_store, persons, authz)

    return Container(
        conn=conn,
        scan_store=scan_store,
        persons=persons,
        branches=branches,
        authz=authz,
        calendar=calendar,
        validator=validator,
        orchestrator=CheckInOrchestrator(scan_store, validator, authz, calendar),
        history=HistoryReader(scan_store, persons, authz, calendar),
        issuer=QRTokenIssuer(persons, authz, ttl_seconds=qr_token_ttl_seconds),
    )


def build_container(
    *,
    db_config: dict,
    qr_token_ttl_seconds: int = DEFAULT_QR_TOKEN_TTL_SECONDS,
    default_timezone: str = DEFAULT_TIMEZONE,
) -> Container:
    conn = DatabaseConnection(db_config_from_dict(db_config))

    return assemble(
        conn=conn,
        scan_store=MySQLScanStore(conn),
        persons=MySQLPersonDirectory(conn),
        branches=MySQLBranchDirectory(conn),
        qr_token_ttl_seconds=qr_token_ttl_seconds,
        default_timezone=default_timezone,
    )
