from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..core.enums import Role


@dataclass(frozen=True)
class IdentityContext:
    """Verified caller handed over by the external authenticator."""

    user_id: int
    role: Role
    branch_id: Optional[int] = None


@dataclass(frozen=True)
class Unrestricted:
    """No branch filter. Only the super role resolves to this."""


@dataclass(frozen=True)
class BranchOnly:
    branch_id: int


BranchRestriction = Union[Unrestricted, BranchOnly]


@dataclass(frozen=True)
class AccessScope:
    user_id: int
    role: Role
    restriction: BranchRestriction

    @property
    def is_unrestricted(self) -> bool:
        return isinstance(self.restriction, Unrestricted)

    @property
    def branch_id(self) -> Optional[int]:
        if isinstance(self.restriction, BranchOnly):
            return self.restriction.branch_id
        return None
