from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from .model import ScanHistoryEntry


class NonceLedger(Protocol):
    """Read side of the consumed-nonce ledger (table qr_checks)."""

    def nonce_exists(self, nonce: str) -> bool:
        raise NotImplementedError

    def list_scans(self, *, branch_id: int, start: datetime, end: datetime) -> Sequence[ScanHistoryEntry]:
        """Ledger entries of a branch scanned in [start, end), newest first."""

        raise NotImplementedError
