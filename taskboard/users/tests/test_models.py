import pytest

from taskboard.users.models import User
from taskboard.users.models import default_preferences
from tests.factories import create_user

pytestmark = pytest.mark.django_db


def test_email_is_stored_lowercase():
    user = User.objects.create_user(
        email="Mixed.Case@Example.COM", password="x", name="Mixed"
    )
    assert user.email == "mixed.case@example.com"


def test_new_user_defaults():
    user = create_user()
    assert user.role == User.Role.USER
    assert user.is_active is True
    assert user.preferences == default_preferences()
    assert user.check_password("TestPass123")


def test_display_name_carries_role():
    user = create_user(User.Role.MANAGER, name="Jane Smith")
    assert user.display_name == "Jane Smith (manager)"


@pytest.mark.parametrize(
    ("role", "elevated"),
    [(User.Role.USER, False), (User.Role.MANAGER, True), (User.Role.ADMIN, True)],
)
def test_is_elevated(role, elevated):
    assert create_user(role).is_elevated is elevated


def test_create_superuser_is_admin():
    user = User.objects.create_superuser(
        email="root@example.com", password="x", name="Root"
    )
    assert user.role == User.Role.ADMIN
    assert user.is_staff
    assert user.is_superuser


def test_create_user_requires_email():
    with pytest.raises(ValueError, match="email must be set"):
        User.objects.create_user(email="", password="x", name="Nobody")
