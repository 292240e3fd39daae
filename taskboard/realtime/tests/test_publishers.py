import pytest
from rest_framework import status

from taskboard.realtime.events import tasks as publishers
from taskboard.realtime.gateway import RealtimeGateway
from taskboard.realtime.rooms import RoomRegistry
from taskboard.tasks.models import Subtask
from taskboard.tasks.models import Task
from tests.factories import RecordingServer
from tests.factories import TokenBook
from tests.factories import client_for
from tests.factories import create_task
from tests.factories import session_for

pytestmark = pytest.mark.django_db

TASKS_URL = "/api/tasks/"


@pytest.fixture
def live(monkeypatch):
    """Process gateway swapped for one driving a recording server."""
    server = RecordingServer()
    gateway = RealtimeGateway(server, authenticate=TokenBook(), registry=RoomRegistry())
    monkeypatch.setattr(publishers, "get_gateway", lambda: gateway)
    return gateway


def attach(gateway, sid, user, *tasks):
    gateway.registry.open(sid)
    gateway.registry.admit(sid, session_for(user))
    for task in tasks:
        gateway.registry.join(sid, f"task_{task.pk}")
    return sid


def test_create_announces_then_notifies_assignee(
    live, member, other_member, django_capture_on_commit_callbacks
):
    attach(live, "creator", member)
    attach(live, "assignee", other_member)

    with django_capture_on_commit_callbacks(execute=True):
        r = client_for(member).post(
            TASKS_URL,
            {
                "title": "Plan the sprint",
                "description": "Pick the stories for next sprint",
                "assignedTo": other_member.pk,
            },
            format="json",
        )
    assert r.status_code == status.HTTP_201_CREATED

    events = [event for event, _ in live.server.to("assignee")]
    assert events == ["task:created", "task:assigned"]
    assert [event for event, _ in live.server.to("creator")] == ["task:created"]
    _, assigned = live.server.to("assignee")[1]
    assert assigned["message"] == "You have been assigned to task: Plan the sprint"
    assert assigned["task"]["id"] == r.data["data"]["task"]["id"]


def test_unassigned_create_only_announces(
    live, member, django_capture_on_commit_callbacks
):
    attach(live, "creator", member)
    with django_capture_on_commit_callbacks(execute=True):
        client_for(member).post(
            TASKS_URL,
            {"title": "Solo work", "description": "Nobody else is involved"},
            format="json",
        )
    assert live.server.events() == ["task:created"]


def test_reassigning_to_same_user_does_not_renotify(
    live, member, other_member, django_capture_on_commit_callbacks
):
    task = create_task(member, assigned_to=other_member)
    attach(live, "assignee", other_member, task)
    with django_capture_on_commit_callbacks(execute=True):
        client_for(member).put(
            f"{TASKS_URL}{task.pk}/",
            {"assignedTo": other_member.pk, "title": "Renamed task"},
            format="json",
        )
    assert live.server.events() == ["task:updated"]


def test_unassigning_does_not_notify(
    live, member, other_member, django_capture_on_commit_callbacks
):
    task = create_task(member, assigned_to=other_member)
    attach(live, "assignee", other_member)
    with django_capture_on_commit_callbacks(execute=True):
        client_for(member).put(
            f"{TASKS_URL}{task.pk}/", {"assignedTo": None}, format="json"
        )
    assert live.server.events() == []


def test_delete_reaches_task_room(live, member, django_capture_on_commit_callbacks):
    task = create_task(member)
    task_id = task.pk
    attach(live, "watcher", member, task)
    with django_capture_on_commit_callbacks(execute=True):
        client_for(member).delete(f"{TASKS_URL}{task_id}/")
    assert live.server.emitted == [("task:deleted", {"taskId": task_id}, "watcher")]


def test_comment_reaches_task_room(
    live, member, other_member, django_capture_on_commit_callbacks
):
    task = create_task(member, assigned_to=other_member)
    attach(live, "watcher", other_member, task)
    attach(live, "bystander", other_member)
    with django_capture_on_commit_callbacks(execute=True):
        client_for(member).post(
            f"{TASKS_URL}{task.pk}/comments/", {"text": "Ping"}, format="json"
        )
    [(event, payload, target)] = live.server.emitted
    assert (event, target) == ("task:new_comment", "watcher")
    assert payload["taskId"] == task.pk
    assert payload["comment"]["text"] == "Ping"


def test_subtask_changes_publish_task_updates(
    live, member, django_capture_on_commit_callbacks
):
    task = create_task(member)
    subtask = Subtask.objects.create(task=task, title="Existing")
    attach(live, "watcher", member, task)
    client = client_for(member)
    with django_capture_on_commit_callbacks(execute=True):
        client.post(f"{TASKS_URL}{task.pk}/subtasks/", {"title": "Fresh"}, format="json")
        client.put(
            f"{TASKS_URL}{task.pk}/subtasks/{subtask.pk}/",
            {"completed": True},
            format="json",
        )
    assert live.server.events() == ["task:updated", "task:updated"]
    _, last = live.server.to("watcher")[-1]
    assert last["completion_percentage"] == 50


def test_rejected_mutation_publishes_nothing(
    live, member, django_capture_on_commit_callbacks
):
    attach(live, "creator", member)
    with django_capture_on_commit_callbacks(execute=True):
        r = client_for(member).post(TASKS_URL, {"title": "x"}, format="json")
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert live.server.emitted == []


def test_publish_failure_is_swallowed(monkeypatch, member):
    def unavailable():
        msg = "gateway not started"
        raise RuntimeError(msg)

    monkeypatch.setattr(publishers, "get_gateway", unavailable)
    task = create_task(member)
    assert publishers.publish_task_updated(task) == 0


def test_mutation_succeeds_when_fan_out_fails(
    monkeypatch, member, django_capture_on_commit_callbacks
):
    def unavailable():
        msg = "gateway not started"
        raise RuntimeError(msg)

    monkeypatch.setattr(publishers, "get_gateway", unavailable)
    with django_capture_on_commit_callbacks(execute=True):
        r = client_for(member).post(
            TASKS_URL,
            {"title": "Still saved", "description": "Durability beats delivery"},
            format="json",
        )
    assert r.status_code == status.HTTP_201_CREATED
    assert Task.objects.filter(title="Still saved").exists()
