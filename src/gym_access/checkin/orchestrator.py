from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..access.engine import AuthorizationEngine
from ..access.model import AccessScope, IdentityContext
from ..attendance.model import Transition
from ..attendance.repository import ScanStore
from ..attendance.state_machine import AttendanceStateMachine
from ..branches.service import BranchCalendar
from ..common.datetime_utils import utc_now
from ..core.constants import OPEN_SESSION_LOOKBACK_DAYS
from ..core.enums import Operation
from ..core.exceptions import ConcurrentScanError, DomainError, InfrastructureError, TokenAlreadyUsedError
from ..qr.model import LedgerEntry, ValidatedScan
from ..qr.token import RawPayload
from ..qr.validator import QRTokenValidator
from .model import ScanOutcome

logger = logging.getLogger(__name__)


class CheckInOrchestrator:
    """Use case: process one QR scan end to end.

    Authorization, token validation and the attendance transition run first;
    the attendance change and the ledger entry for the consumed nonce are
    then written in one store transaction. Any failure leaves no trace.
    """

    def __init__(
        self,
        store: ScanStore,
        validator: QRTokenValidator,
        authz: AuthorizationEngine,
        calendar: BranchCalendar,
        *,
        state_machine: Optional[AttendanceStateMachine] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._validator = validator
        self._authz = authz
        self._calendar = calendar
        self._machine = state_machine or AttendanceStateMachine()
        self._clock = clock

    def process_scan(
        self, payload: RawPayload, identity: IdentityContext, *, now: Optional[datetime] = None
    ) -> ScanOutcome:
        now = now or self._clock()
        try:
            scope = self._authz.resolve_scope(identity)
            self._authz.require(scope, Operation.RECORD_ATTENDANCE)
            validated = self._validator.validate(payload, scope, now=now)
            transition = self._commit(validated, scope, now)
        except InfrastructureError as exc:
            logger.error("QR check aborted (retryable): %s, scanner=%s", exc, identity.user_id)
            return ScanOutcome.failure(exc, timestamp=now)
        except TokenAlreadyUsedError as exc:
            logger.warning("QR replay rejected: scanner=%s", identity.user_id)
            return ScanOutcome.failure(exc, timestamp=now)
        except DomainError as exc:
            logger.info("QR check rejected: kind=%s, reason=%s, scanner=%s", exc.kind.value, exc, identity.user_id)
            return ScanOutcome.failure(exc, timestamp=now)

        person = validated.person
        logger.info(
            "QR check processed: action=%s, %s, scanner_id=%s", transition.action.value, person.ref, scope.user_id
        )
        return ScanOutcome.success(action=transition.action, person=person.summary(), timestamp=now)

    def _commit(self, validated: ValidatedScan, scope: AccessScope, now: datetime) -> Transition:
        person = validated.person
        token = validated.token
        today = self._calendar.day_of(person.branch_id, now)

        with self._store.transaction() as tx:
            # Nonce claim first: a concurrent scan of the same token waits on
            # the unique key, then fails as a replay.
            entry_id = tx.insert_ledger_entry(
                LedgerEntry(
                    nonce=token.nonce,
                    subject=person.ref,
                    branch_id=person.branch_id,
                    issued_at=token.issued_at,
                    expires_at=token.expires_at,
                    scanned_at=now,
                    action=None,
                    scanned_by_user_id=scope.user_id,
                )
            )

            current = tx.get_attendance_for_update(person.ref, today)
            if current is None:
                # A session opened before local midnight is still closed by this scan.
                current = tx.get_open_attendance_for_update(
                    person.ref,
                    since=today - timedelta(days=OPEN_SESSION_LOOKBACK_DAYS),
                    before=today,
                )

            transition = self._machine.on_scan(
                current,
                subject=person.ref,
                branch_id=person.branch_id,
                work_date=today,
                now=now,
            )

            if transition.created:
                tx.insert_attendance(transition.record)
            elif not tx.complete_attendance(transition.record):
                raise ConcurrentScanError()

            tx.record_ledger_action(entry_id, transition.action)

        return transition
