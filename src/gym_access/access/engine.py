from __future__ import annotations

import logging
from typing import Mapping, Optional

from ..core.enums import Operation, Role
from ..core.exceptions import ForbiddenError, NotFoundError, ScopeConfigurationError
from ..persons.model import Person
from .model import AccessScope, BranchOnly, IdentityContext, Unrestricted
from .permissions import PERMISSIONS, UNRESTRICTED_ROLES

logger = logging.getLogger(__name__)


class AuthorizationEngine:
    """Branch isolation + role capabilities.

    Every read/write path on people and attendance goes through these
    primitives before touching data.
    """

    def __init__(self, permissions: Optional[Mapping[Role, frozenset]] = None):
        self._permissions = dict(permissions or PERMISSIONS)

    def resolve_scope(self, identity: IdentityContext) -> AccessScope:
        try:
            role = Role(identity.role)
        except ValueError:
            raise ScopeConfigurationError(f"Unknown role: {identity.role!r}") from None

        if role not in self._permissions:
            raise ScopeConfigurationError(f"Role {role.value} has no capability entry")

        if role in UNRESTRICTED_ROLES:
            return AccessScope(user_id=int(identity.user_id), role=role, restriction=Unrestricted())

        # A branch-scoped identity without a branch is a configuration error,
        # never an unfiltered query.
        if identity.branch_id is None:
            logger.warning("Identity user_id=%s role=%s has no branch", identity.user_id, role.value)
            raise ScopeConfigurationError()

        return AccessScope(
            user_id=int(identity.user_id),
            role=role,
            restriction=BranchOnly(int(identity.branch_id)),
        )

    def can_access_branch(self, scope: AccessScope, branch_id: int) -> bool:
        if isinstance(scope.restriction, Unrestricted):
            return True
        return scope.restriction.branch_id == int(branch_id)

    def is_allowed(self, scope: AccessScope, operation: Operation) -> bool:
        return operation in self._permissions.get(scope.role, frozenset())

    def can_act_on_person(self, scope: AccessScope, person: Person, operation: Operation) -> bool:
        return self.can_access_branch(scope, person.branch_id) and self.is_allowed(scope, operation)

    def require(self, scope: AccessScope, operation: Operation) -> None:
        if not self.is_allowed(scope, operation):
            logger.info("Denied %s for user_id=%s role=%s", operation.value, scope.user_id, scope.role.value)
            raise ForbiddenError()

    def require_branch(self, scope: AccessScope, branch_id: int) -> None:
        """An explicit branch parameter must match the caller's branch."""
        if not self.can_access_branch(scope, branch_id):
            logger.info("Branch isolation: user_id=%s asked for branch %s", scope.user_id, branch_id)
            raise ForbiddenError("Access denied: Branch isolation enforced")

    def authorize_person(
        self,
        scope: AccessScope,
        person: Person,
        operation: Operation,
        *,
        own_operation: Optional[Operation] = None,
    ) -> None:
        """Allow ``operation`` on ``person`` or raise.

        Out-of-branch targets look like missing ones to branch-scoped callers;
        only same-branch denials are reported as forbidden.
        """
        if not self.can_access_branch(scope, person.branch_id):
            raise NotFoundError("Person not found")

        if self.is_allowed(scope, operation):
            return

        is_self = person.user_id is not None and person.user_id == scope.user_id
        if own_operation is not None and is_self and self.is_allowed(scope, own_operation):
            return

        raise ForbiddenError()
