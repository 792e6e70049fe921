from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller roles handed over by the external authenticator."""

    SUPER = "super"
    BRANCH_ADMIN = "branch_admin"
    TRAINER = "trainer"
    FRONT_DESK = "front_desk"
    MEMBER = "member"


class Operation(str, Enum):
    """Operations guarded by the capability table."""

    RECORD_ATTENDANCE = "record_attendance"
    VIEW_SCAN_HISTORY = "view_scan_history"
    VIEW_ATTENDANCE_HISTORY = "view_attendance_history"
    VIEW_OWN_ATTENDANCE = "view_own_attendance"
    ISSUE_QR_TOKEN = "issue_qr_token"
    ISSUE_OWN_QR_TOKEN = "issue_own_qr_token"
    CREATE_STAFF = "create_staff"
    DELETE_STAFF = "delete_staff"


class PersonType(str, Enum):
    MEMBER = "member"
    STAFF = "staff"


class PersonStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class AttendanceStatus(str, Enum):
    """Lifecycle of a daily attendance row."""

    ACTIVE = "active"
    COMPLETED = "completed"


class ScanAction(str, Enum):
    CHECKIN = "checkin"
    CHECKOUT = "checkout"


class ErrorKind(str, Enum):
    """Error taxonomy surfaced to scanning clients."""

    MALFORMED_INPUT = "malformed_input"
    EXPIRED = "expired"
    ALREADY_USED = "already_used"
    SUBJECT_NOT_FOUND = "subject_not_found"
    SUBJECT_INACTIVE = "subject_inactive"
    BRANCH_MISMATCH = "branch_mismatch"
    INVALID_TRANSITION = "invalid_transition"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    SCOPE_CONFIGURATION = "scope_configuration"
    INFRASTRUCTURE = "infrastructure"
