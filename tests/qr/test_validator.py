from dataclasses import replace
from datetime import timedelta

import pytest

from gym_access.core.enums import PersonType, ScanAction
from gym_access.core.exceptions import (
    BranchMismatchError,
    MalformedTokenError,
    SubjectInactiveError,
    SubjectNotFoundError,
    TokenAlreadyUsedError,
    TokenExpiredError,
)
from gym_access.persons.model import SubjectRef
from gym_access.qr.model import LedgerEntry

MEMBER_1 = SubjectRef(PersonType.MEMBER, 1)
MEMBER_2 = SubjectRef(PersonType.MEMBER, 2)


def _burn(store, token_payload, fixed_now):
    store.ledger[token_payload["nonce"]] = LedgerEntry(
        nonce=token_payload["nonce"],
        subject=MEMBER_1,
        branch_id=1,
        issued_at=fixed_now,
        expires_at=fixed_now,
        scanned_at=fixed_now,
        action=ScanAction.CHECKIN,
        scanned_by_user_id=3,
        entry_id=1,
    )


def _validate(container, payload, identity, now):
    scope = container.authz.resolve_scope(identity)
    return container.validator.validate(payload, scope, now=now)


def test_valid_token_returns_person(container, ids, make_token, fixed_now):
    validated = _validate(container, make_token(MEMBER_1), ids.desk1, fixed_now)

    assert validated.person.display_name == "An Nguyen"
    assert validated.token.subject == MEMBER_1


def test_validation_writes_nothing(container, store, ids, make_token, fixed_now):
    _validate(container, make_token(MEMBER_1), ids.desk1, fixed_now)

    assert store.ledger == {}
    assert store.attendance == {}


def test_token_valid_at_exact_expiry(container, ids, make_token, fixed_now):
    payload = make_token(MEMBER_1, issued_at=fixed_now - timedelta(seconds=60))

    _validate(container, payload, ids.desk1, fixed_now)


def test_expired_token(container, ids, make_token, fixed_now):
    payload = make_token(MEMBER_1, issued_at=fixed_now - timedelta(seconds=61))

    with pytest.raises(TokenExpiredError):
        _validate(container, payload, ids.desk1, fixed_now)


def test_expiry_is_checked_before_replay(container, store, ids, make_token, fixed_now):
    payload = make_token(MEMBER_1, issued_at=fixed_now - timedelta(minutes=5))
    _burn(store, payload, fixed_now)

    with pytest.raises(TokenExpiredError):
        _validate(container, payload, ids.desk1, fixed_now)


def test_replayed_nonce(container, store, ids, make_token, fixed_now):
    payload = make_token(MEMBER_1)
    _burn(store, payload, fixed_now)

    with pytest.raises(TokenAlreadyUsedError):
        _validate(container, payload, ids.desk1, fixed_now)


def test_unknown_person(container, ids, make_token, fixed_now):
    with pytest.raises(SubjectNotFoundError):
        _validate(container, make_token(SubjectRef(PersonType.MEMBER, 99)), ids.desk1, fixed_now)


def test_inactive_person(container, ids, make_token, fixed_now):
    with pytest.raises(SubjectInactiveError):
        _validate(container, make_token(SubjectRef(PersonType.MEMBER, 3)), ids.desk1, fixed_now)


def test_other_branch_person(container, ids, make_token, fixed_now):
    with pytest.raises(BranchMismatchError):
        _validate(container, make_token(MEMBER_2), ids.desk1, fixed_now)


def test_super_crosses_branches(container, ids, make_token, fixed_now):
    validated = _validate(container, make_token(MEMBER_2), ids.super, fixed_now)

    assert validated.person.branch_id == 2


def test_malformed_stops_before_lookup(container, ids, make_token, fixed_now):
    payload = make_token(MEMBER_1)
    payload.pop("nonce")

    with pytest.raises(MalformedTokenError):
        _validate(container, payload, ids.desk1, fixed_now)


def test_inactive_reported_before_branch(container, persons, ids, make_token, fixed_now):
    inactive = SubjectRef(PersonType.MEMBER, 3)
    persons.persons[inactive] = replace(persons.persons[inactive], branch_id=2)

    with pytest.raises(SubjectInactiveError):
        _validate(container, make_token(inactive), ids.desk1, fixed_now)
