"""
tests/test_policy.py -- Unit tests for the AuthZ gate (auth/policy.py).
"""

from __future__ import annotations

import pytest

from auth.models import Role, User
from auth.policy import ADMIN_ONLY, OWNER_OR_ADMIN, Operation, authorize, can_modify, is_admin
from core.errors import Forbidden

ALICE = User(username="alice", email="a@x.com", id=1)
BOB = User(username="bob", email="b@x.com", id=2)
ADMIN = User(username="root", email="r@x.com", id=3, role=Role.ADMIN)


def test_every_operation_is_classified_exactly_once():
    assert ADMIN_ONLY | OWNER_OR_ADMIN == set(Operation)
    assert not ADMIN_ONLY & OWNER_OR_ADMIN


def test_is_admin():
    assert is_admin(ADMIN)
    assert not is_admin(ALICE)


def test_can_modify_owner_or_admin():
    assert can_modify(ALICE, author_id=1)
    assert not can_modify(BOB, author_id=1)
    assert can_modify(ADMIN, author_id=1)


@pytest.mark.parametrize("operation", sorted(OWNER_OR_ADMIN, key=lambda o: o.value))
def test_owner_or_admin_operations(operation):
    authorize(ALICE, operation, author_id=1)
    authorize(ADMIN, operation, author_id=1)
    with pytest.raises(Forbidden):
        authorize(BOB, operation, author_id=1)


@pytest.mark.parametrize("operation", sorted(ADMIN_ONLY, key=lambda o: o.value))
def test_admin_only_operations(operation):
    authorize(ADMIN, operation)
    with pytest.raises(Forbidden):
        authorize(ALICE, operation)


def test_owner_operation_requires_author():
    with pytest.raises(ValueError):
        authorize(ALICE, Operation.EDIT_POST)
