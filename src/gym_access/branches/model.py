from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional


@dataclass(frozen=True)
class Branch:
    """Tenant boundary: every person, attendance row and ledger entry belongs to one branch."""

    branch_id: int
    name: str
    timezone: str = "UTC"
    opens_at: Optional[time] = None
    closes_at: Optional[time] = None
    is_active: bool = True
