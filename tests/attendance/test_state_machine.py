from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from gym_access.attendance.factory import AttendanceStateFactory
from gym_access.attendance.model import AttendanceRecord
from gym_access.attendance.state_machine import AttendanceStateMachine
from gym_access.attendance.states.checked_in import CheckedInState
from gym_access.attendance.states.checked_out import CheckedOutState
from gym_access.attendance.states.no_record import NoRecordState
from gym_access.core.enums import AttendanceStatus, PersonType, ScanAction
from gym_access.core.exceptions import InvalidTransitionError
from gym_access.persons.model import SubjectRef

SUBJECT = SubjectRef(PersonType.MEMBER, 1)
TODAY = date(2026, 2, 1)
MORNING = datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)


def _open_record(check_in=MORNING, work_date=TODAY):
    return AttendanceRecord(
        attendance_id=10,
        subject=SUBJECT,
        branch_id=1,
        work_date=work_date,
        check_in_time=check_in,
        check_out_time=None,
        status=AttendanceStatus.ACTIVE,
    )


def _scan(current, now):
    return AttendanceStateMachine().on_scan(current, subject=SUBJECT, branch_id=1, work_date=TODAY, now=now)


def test_factory_picks_state_by_record():
    factory = AttendanceStateFactory()
    closed = replace(_open_record(), check_out_time=MORNING, status=AttendanceStatus.COMPLETED)

    assert isinstance(factory.for_record(None), NoRecordState)
    assert isinstance(factory.for_record(_open_record()), CheckedInState)
    assert isinstance(factory.for_record(closed), CheckedOutState)


def test_first_scan_checks_in():
    t = _scan(None, MORNING)

    assert t.action == ScanAction.CHECKIN
    assert t.created
    assert t.record.check_in_time == MORNING
    assert t.record.check_out_time is None
    assert t.record.status == AttendanceStatus.ACTIVE
    assert t.record.work_date == TODAY


def test_second_scan_checks_out_and_sets_duration():
    later = MORNING + timedelta(hours=1, minutes=30)

    t = _scan(_open_record(), later)

    assert t.action == ScanAction.CHECKOUT
    assert not t.created
    assert t.record.attendance_id == 10
    assert t.record.status == AttendanceStatus.COMPLETED
    assert t.record.total_duration == timedelta(hours=1, minutes=30)
    assert t.record.to_dict()["totalHours"] == 1.5


def test_checkout_keeps_original_work_date():
    yesterday = TODAY - timedelta(days=1)
    carried = _open_record(check_in=MORNING - timedelta(hours=2), work_date=yesterday)

    t = _scan(carried, MORNING)

    assert t.record.work_date == yesterday


def test_checkout_at_check_in_instant_gives_zero_duration():
    t = _scan(_open_record(), MORNING)

    assert t.record.total_duration == timedelta(0)


def test_checkout_before_check_in_is_rejected():
    with pytest.raises(InvalidTransitionError):
        _scan(_open_record(), MORNING - timedelta(seconds=1))


def test_third_scan_is_rejected():
    t = _scan(_open_record(), MORNING + timedelta(hours=1))

    with pytest.raises(InvalidTransitionError) as exc:
        _scan(t.record, MORNING + timedelta(hours=2))

    assert exc.value.message == "Already checked out for today"


def test_checked_in_state_closes_given_record():
    t = CheckedInState().on_scan(
        _open_record(), subject=SUBJECT, branch_id=1, work_date=TODAY, now=MORNING + timedelta(minutes=45)
    )

    assert t.record.total_duration == timedelta(minutes=45)
