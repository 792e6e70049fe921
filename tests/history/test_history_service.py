from datetime import timedelta

import pytest

from gym_access.core.enums import PersonType
from gym_access.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from gym_access.persons.model import SubjectRef

MEMBER_1 = SubjectRef(PersonType.MEMBER, 1)
MEMBER_2 = SubjectRef(PersonType.MEMBER, 2)
STAFF_1 = SubjectRef(PersonType.STAFF, 1)


@pytest.fixture
def busy_day(container, ids, make_token, fixed_now):
    """Yesterday's visit plus today's scans in branches 1 and 2."""
    scan = container.orchestrator.process_scan
    yesterday = fixed_now - timedelta(days=1)
    scan(make_token(MEMBER_1, issued_at=yesterday), ids.desk1, now=yesterday)
    scan(make_token(MEMBER_1, issued_at=yesterday + timedelta(hours=1)), ids.desk1, now=yesterday + timedelta(hours=1))

    scan(make_token(MEMBER_1), ids.desk1, now=fixed_now)
    scan(make_token(STAFF_1), ids.admin1, now=fixed_now + timedelta(minutes=5))
    scan(make_token(MEMBER_2), ids.desk2, now=fixed_now)
    return container


def test_today_history_is_branch_local_and_newest_first(busy_day, ids, fixed_now):
    history = busy_day.history.get_today_history(1, ids.desk1, now=fixed_now + timedelta(hours=1))

    assert [h.person["name"] for h in history] == ["Minh Le", "An Nguyen"]
    assert [h.scanner_name for h in history] == ["Linh Tran", "Minh Le"]
    first = history[0].to_dict()
    assert first["action"] == "checkin"
    assert first["scannedAt"] == "2026-02-01T08:05:00Z"
    assert first["person"] == {"id": 1, "name": "Minh Le", "type": "staff"}


def test_today_history_accepts_string_branch_id(busy_day, ids, fixed_now):
    history = busy_day.history.get_today_history("2", ids.desk2, now=fixed_now)

    assert [h.person["id"] for h in history] == [2]


def test_today_history_rejects_other_branch(busy_day, ids, fixed_now):
    with pytest.raises(ForbiddenError, match="Branch isolation"):
        busy_day.history.get_today_history(1, ids.desk2, now=fixed_now)


def test_today_history_super_sees_any_branch(busy_day, ids, fixed_now):
    assert len(busy_day.history.get_today_history(2, ids.super, now=fixed_now)) == 1


def test_today_history_requires_capability(busy_day, ids, fixed_now):
    with pytest.raises(ForbiddenError):
        busy_day.history.get_today_history(1, ids.trainer1, now=fixed_now)


def test_today_history_rejects_bad_branch_id(busy_day, ids, fixed_now):
    with pytest.raises(ValidationError):
        busy_day.history.get_today_history("abc", ids.super, now=fixed_now)


def test_attendance_history_newest_first(busy_day, ids):
    records = busy_day.history.get_attendance_history(1, "member", ids.desk1)

    assert [r.work_date.isoformat() for r in records] == ["2026-02-01", "2026-01-31"]
    assert records[0].is_open
    assert records[1].to_dict()["totalHours"] == 1.0


def test_attendance_history_limit(busy_day, ids):
    assert len(busy_day.history.get_attendance_history(1, "member", ids.desk1, limit=1)) == 1


def test_trainer_can_read_branch_attendance(busy_day, ids):
    assert len(busy_day.history.get_attendance_history(1, PersonType.MEMBER, ids.trainer1)) == 2


def test_member_reads_own_attendance(busy_day, ids):
    assert len(busy_day.history.get_attendance_history(1, "member", ids.member1)) == 2


def test_member_cannot_read_someone_else(busy_day, ids):
    with pytest.raises(ForbiddenError):
        busy_day.history.get_attendance_history(1, "staff", ids.member1)


def test_out_of_branch_person_looks_missing(busy_day, ids):
    with pytest.raises(NotFoundError):
        busy_day.history.get_attendance_history(1, "member", ids.desk2)


def test_unknown_person(busy_day, ids):
    with pytest.raises(NotFoundError):
        busy_day.history.get_attendance_history(99, "member", ids.super)


def test_invalid_person_type(busy_day, ids):
    with pytest.raises(ValidationError):
        busy_day.history.get_attendance_history(1, "visitor", ids.super)


def test_today_history_rejects_non_ascii_digits(busy_day, ids, fixed_now):
    with pytest.raises(ValidationError):
        busy_day.history.get_today_history("²", ids.super, now=fixed_now)
