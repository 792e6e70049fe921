from __future__ import annotations

from typing import Optional, Protocol

from .model import Branch


class BranchDirectory(Protocol):
    """Read-only view of branches owned by the branch management collaborator."""

    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        raise NotImplementedError
