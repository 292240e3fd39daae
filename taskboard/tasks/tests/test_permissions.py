import pytest

from taskboard.tasks.api.permissions import can_mutate_task
from taskboard.tasks.api.permissions import can_view_task
from taskboard.users.models import User
from tests.factories import create_task
from tests.factories import create_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def cast():
    creator = create_user()
    assignee = create_user()
    return {
        "creator": creator,
        "assignee": assignee,
        "stranger": create_user(),
        "manager": create_user(User.Role.MANAGER),
        "admin": create_user(User.Role.ADMIN),
        "task": create_task(creator, assigned_to=assignee),
    }


@pytest.mark.parametrize(
    ("who", "view", "edit", "delete"),
    [
        ("creator", True, True, True),
        ("assignee", True, True, False),
        ("stranger", False, False, False),
        ("manager", True, True, True),
        ("admin", True, True, True),
    ],
)
def test_task_capabilities(cast, who, view, edit, delete):
    user, task = cast[who], cast["task"]
    assert can_view_task(user, task) is view
    assert can_mutate_task(user, task) is edit
    assert can_mutate_task(user, task, delete=True) is delete


def test_unassigned_task_is_private_to_its_creator(cast):
    task = create_task(cast["creator"])
    assert can_view_task(cast["creator"], task)
    assert not can_view_task(cast["assignee"], task)
