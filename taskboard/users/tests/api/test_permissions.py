from types import SimpleNamespace

import pytest
from django.contrib.auth.models import AnonymousUser

from taskboard.users.api.permissions import can_mutate_user
from taskboard.users.api.permissions import is_admin
from taskboard.users.api.permissions import is_elevated


def actor(role: str, pk: int = 1):
    return SimpleNamespace(pk=pk, role=role, is_authenticated=True)


@pytest.mark.parametrize(
    ("role", "field", "own", "allowed"),
    [
        ("user", "name", True, True),
        ("user", "name", False, False),
        ("user", "role", True, False),
        ("user", "is_active", True, False),
        ("user", "delete", False, False),
        ("manager", "email", False, True),
        ("manager", "role", False, False),
        ("manager", "delete", False, False),
        ("admin", "phone", False, True),
        ("admin", "role", False, True),
        ("admin", "is_active", False, True),
        ("admin", "delete", False, True),
        ("admin", "delete", True, False),
        ("admin", "password", False, False),
    ],
)
def test_can_mutate_user(role, field, own, allowed):
    target_id = 1 if own else 2
    assert can_mutate_user(actor(role), target_id, field) is allowed


def test_anonymous_has_no_capabilities():
    anonymous = AnonymousUser()
    assert not is_admin(anonymous)
    assert not is_elevated(anonymous)
    assert not can_mutate_user(anonymous, 1, "name")
