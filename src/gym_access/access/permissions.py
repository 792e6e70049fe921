"""Static role -> operation capability table.

Every role must have an entry; adding a role without deciding its operations
fails at import time.
"""

from __future__ import annotations

from ..core.enums import Operation, Role

_STAFF_SELF_SERVICE = frozenset({Operation.VIEW_OWN_ATTENDANCE, Operation.ISSUE_OWN_QR_TOKEN})

PERMISSIONS: dict[Role, frozenset[Operation]] = {
    Role.SUPER: frozenset(Operation),
    Role.BRANCH_ADMIN: frozenset(Operation),
    Role.FRONT_DESK: _STAFF_SELF_SERVICE
    | {
        Operation.RECORD_ATTENDANCE,
        Operation.VIEW_SCAN_HISTORY,
        Operation.VIEW_ATTENDANCE_HISTORY,
        Operation.ISSUE_QR_TOKEN,
    },
    Role.TRAINER: _STAFF_SELF_SERVICE | {Operation.VIEW_ATTENDANCE_HISTORY},
    Role.MEMBER: _STAFF_SELF_SERVICE,
}

# Roles that are never tied to a single branch.
UNRESTRICTED_ROLES = frozenset({Role.SUPER})


def _check_table_complete() -> None:
    missing = [r.value for r in Role if r not in PERMISSIONS]
    if missing:
        raise RuntimeError(f"Roles without a capability entry: {', '.join(missing)}")


_check_table_complete()


def is_allowed(role: Role, operation: Operation) -> bool:
    return operation in PERMISSIONS[role]
