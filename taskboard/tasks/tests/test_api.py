from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework import status

from taskboard.tasks.models import Subtask
from taskboard.tasks.models import Task
from tests.factories import client_for
from tests.factories import create_task

pytestmark = pytest.mark.django_db

TASKS_URL = "/api/tasks/"


def _future(days: int = 7) -> str:
    return (timezone.now() + timedelta(days=days)).isoformat()


def _fields(response) -> set[str]:
    return {error["field"] for error in response.data.get("errors", [])}


def _task_payload(**overrides):
    payload = {
        "title": "Write release notes",
        "description": "Summarise every change since the last tag",
    }
    payload.update(overrides)
    return payload


class TestList:
    def test_requires_authentication(self, api_client):
        r = api_client.get(TASKS_URL)
        assert r.status_code == status.HTTP_401_UNAUTHORIZED
        assert r.data["success"] is False

    def test_member_sees_only_own_and_assigned(self, member, other_member):
        mine = create_task(member)
        assigned = create_task(other_member, assigned_to=member)
        create_task(other_member)
        create_task(member, is_archived=True)

        r = client_for(member).get(TASKS_URL)
        assert r.status_code == status.HTTP_200_OK
        ids = {task["id"] for task in r.data["data"]["tasks"]}
        assert ids == {mine.pk, assigned.pk}
        assert r.data["data"]["pagination"]["total_tasks"] == 2

    def test_manager_sees_everything(self, manager, member, other_member):
        create_task(member)
        create_task(other_member)
        r = client_for(manager).get(TASKS_URL)
        assert len(r.data["data"]["tasks"]) == 2

    def test_pagination(self, member):
        for _ in range(7):
            create_task(member)
        r = client_for(member).get(TASKS_URL, {"page": 2, "limit": 5})
        assert r.data["data"]["pagination"] == {
            "current": 2,
            "total": 2,
            "count": 2,
            "total_tasks": 7,
        }

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_out_of_range(self, member, limit):
        r = client_for(member).get(TASKS_URL, {"limit": limit})
        assert r.status_code == status.HTTP_400_BAD_REQUEST
        assert "limit" in _fields(r)

    def test_filters(self, member, other_member):
        bug = create_task(
            member,
            category=Task.Category.BUG,
            status=Task.Status.REVIEW,
            assigned_to=other_member,
        )
        create_task(member, tags=["backend"], title="Refactor the parser")
        client = client_for(member)

        r = client.get(TASKS_URL, {"status": "review"})
        assert [t["id"] for t in r.data["data"]["tasks"]] == [bug.pk]

        r = client.get(TASKS_URL, {"category": "bug"})
        assert [t["id"] for t in r.data["data"]["tasks"]] == [bug.pk]

        r = client.get(TASKS_URL, {"assignedTo": other_member.pk})
        assert [t["id"] for t in r.data["data"]["tasks"]] == [bug.pk]

        r = client.get(TASKS_URL, {"search": "BACKEND"})
        assert [t["title"] for t in r.data["data"]["tasks"]] == ["Refactor the parser"]

        r = client.get(TASKS_URL, {"search": "parser"})
        assert len(r.data["data"]["tasks"]) == 1

    @pytest.mark.parametrize("term", [",", '"', "[", '","'])
    def test_search_ignores_tag_list_syntax(self, member, term):
        create_task(
            member,
            title="Alpha thing",
            description="Nothing to see here",
            tags=["ui", "api"],
        )
        r = client_for(member).get(TASKS_URL, {"search": term})
        assert r.status_code == status.HTTP_200_OK
        assert r.data["data"]["pagination"]["total_tasks"] == 0

    def test_search_matches_tag(self, member):
        tagged = create_task(member, tags=["ui", "api"])
        create_task(member, tags=["backend"])
        r = client_for(member).get(TASKS_URL, {"search": "API"})
        assert [t["id"] for t in r.data["data"]["tasks"]] == [tagged.pk]

    def test_unknown_status_filter_is_rejected(self, member):
        r = client_for(member).get(TASKS_URL, {"status": "someday"})
        assert r.status_code == status.HTTP_400_BAD_REQUEST

    def test_due_date_filter_is_upper_bound(self, member):
        soon = create_task(member, due_date=timezone.now() + timedelta(days=1))
        create_task(member, due_date=timezone.now() + timedelta(days=30))
        r = client_for(member).get(TASKS_URL, {"due_date": _future(7)})
        assert [t["id"] for t in r.data["data"]["tasks"]] == [soon.pk]

    def test_sort_by_priority_uses_rank(self, member):
        for priority in ("high", "low", "urgent", "medium"):
            create_task(member, priority=priority)
        client = client_for(member)

        r = client.get(TASKS_URL, {"sort": "priority"})
        assert [t["priority"] for t in r.data["data"]["tasks"]] == [
            "low",
            "medium",
            "high",
            "urgent",
        ]
        r = client.get(TASKS_URL, {"sort": "-priority"})
        assert r.data["data"]["tasks"][0]["priority"] == "urgent"

    def test_sort_alias(self, member):
        late = create_task(member, due_date=timezone.now() + timedelta(days=9))
        early = create_task(member, due_date=timezone.now() + timedelta(days=1))
        r = client_for(member).get(TASKS_URL, {"sort": "dueDate"})
        assert [t["id"] for t in r.data["data"]["tasks"]] == [early.pk, late.pk]

    def test_invalid_sort(self, member):
        r = client_for(member).get(TASKS_URL, {"sort": "description"})
        assert r.status_code == status.HTTP_400_BAD_REQUEST


class TestCreate:
    def test_creates_task_owned_by_caller(self, member, other_member):
        r = client_for(member).post(
            TASKS_URL,
            _task_payload(
                assignedTo=other_member.pk,
                dueDate=_future(),
                estimatedHours=4.5,
                tags=["Docs", "Release"],
                priority="high",
            ),
            format="json",
        )
        assert r.status_code == status.HTTP_201_CREATED, r.content
        assert r.data["message"] == "Task created successfully"
        task = r.data["data"]["task"]
        assert task["created_by"]["id"] == member.pk
        assert task["assigned_to"]["id"] == other_member.pk
        assert task["tags"] == ["docs", "release"]
        assert task["estimated_hours"] == 4.5
        assert task["status"] == "todo"
        assert task["is_overdue"] is False
        assert task["days_until_due"] == 7

    def test_created_by_cannot_be_forged(self, member, other_member):
        r = client_for(member).post(
            TASKS_URL, _task_payload(created_by=other_member.pk), format="json"
        )
        assert r.status_code == status.HTTP_201_CREATED
        assert Task.objects.get().created_by == member

    @pytest.mark.parametrize(
        ("overrides", "field"),
        [
            ({"title": "ab"}, "title"),
            ({"description": "too short"}, "description"),
            ({"status": "someday"}, "status"),
            ({"priority": "critical"}, "priority"),
            ({"progress": 101}, "progress"),
            ({"estimatedHours": 1001}, "estimated_hours"),
            ({"actualHours": -1}, "actual_hours"),
            ({"tags": ["x" * 21]}, "tags.0"),
        ],
    )
    def test_validation(self, member, overrides, field):
        r = client_for(member).post(
            TASKS_URL, _task_payload(**overrides), format="json"
        )
        assert r.status_code == status.HTTP_400_BAD_REQUEST
        assert r.data["message"] == "Validation failed"
        assert field in _fields(r)

    def test_missing_title(self, member):
        r = client_for(member).post(
            TASKS_URL, {"description": "Nothing but a description"}, format="json"
        )
        assert {"field": "title", "message": "Task title is required"} in r.data[
            "errors"
        ]

    def test_due_date_must_be_in_the_future(self, member):
        past = (timezone.now() - timedelta(days=1)).isoformat()
        r = client_for(member).post(
            TASKS_URL, _task_payload(dueDate=past), format="json"
        )
        assert r.status_code == status.HTTP_400_BAD_REQUEST
        assert {"field": "due_date", "message": "Due date must be in the future"} in (
            r.data["errors"]
        )

    def test_unknown_assignee(self, member):
        r = client_for(member).post(
            TASKS_URL, _task_payload(assignedTo=999999), format="json"
        )
        assert r.status_code == status.HTTP_400_BAD_REQUEST
        assert {"field": "assigned_to", "message": "Assigned user not found"} in (
            r.data["errors"]
        )


class TestRetrieve:
    def test_includes_children(self, member):
        task = create_task(member)
        Subtask.objects.create(task=task, title="First step", completed=True)
        Subtask.objects.create(task=task, title="Second step")
        task.comments.create(user=member, text="Started")

        r = client_for(member).get(f"{TASKS_URL}{task.pk}/")
        assert r.status_code == status.HTTP_200_OK
        data = r.data["data"]["task"]
        assert [s["title"] for s in data["subtasks"]] == ["First step", "Second step"]
        assert data["comments"][0]["user"]["id"] == member.pk
        assert data["completion_percentage"] == 50

    def test_not_found(self, member):
        r = client_for(member).get(f"{TASKS_URL}999999/")
        assert r.status_code == status.HTTP_404_NOT_FOUND
        assert r.data == {"success": False, "message": "Task not found"}

    def test_invisible_task_is_denied(self, member, other_member):
        task = create_task(other_member)
        r = client_for(member).get(f"{TASKS_URL}{task.pk}/")
        assert r.status_code == status.HTTP_403_FORBIDDEN
        assert r.data["message"] == "Access denied"


class TestUpdate:
    def test_assignee_may_update(self, member, other_member):
        task = create_task(other_member, assigned_to=member)
        r = client_for(member).put(
            f"{TASKS_URL}{task.pk}/", {"status": "completed"}, format="json"
        )
        assert r.status_code == status.HTTP_200_OK, r.content
        assert r.data["message"] == "Task updated successfully"
        data = r.data["data"]["task"]
        assert data["status"] == "completed"
        assert data["progress"] == 100
        assert data["completed_at"] is not None

    def test_without_trailing_slash(self, member):
        task = create_task(member)
        r = client_for(member).put(
            f"/api/tasks/{task.pk}", {"status": "review"}, format="json"
        )
        assert r.status_code == status.HTTP_200_OK, r.content
        task.refresh_from_db()
        assert task.status == Task.Status.REVIEW

    def test_stranger_may_not_update(self, member, other_member):
        task = create_task(other_member)
        r = client_for(member).put(
            f"{TASKS_URL}{task.pk}/", {"title": "Taken over"}, format="json"
        )
        assert r.status_code == status.HTTP_403_FORBIDDEN
        task.refresh_from_db()
        assert task.title != "Taken over"

    def test_partial_update_keeps_other_fields(self, member):
        task = create_task(member, priority=Task.Priority.HIGH)
        r = client_for(member).put(
            f"{TASKS_URL}{task.pk}/", {"progress": 30}, format="json"
        )
        assert r.status_code == status.HTTP_200_OK
        task.refresh_from_db()
        assert (task.progress, task.priority) == (30, Task.Priority.HIGH)

    def test_past_due_date_is_allowed_on_update(self, member):
        task = create_task(member)
        past = (timezone.now() - timedelta(days=1)).isoformat()
        r = client_for(member).put(
            f"{TASKS_URL}{task.pk}/", {"dueDate": past}, format="json"
        )
        assert r.status_code == status.HTTP_200_OK
        assert r.data["data"]["task"]["is_overdue"] is True

    def test_unassign(self, member, other_member):
        task = create_task(member, assigned_to=other_member)
        r = client_for(member).put(
            f"{TASKS_URL}{task.pk}/", {"assignedTo": None}, format="json"
        )
        assert r.status_code == status.HTTP_200_OK
        assert r.data["data"]["task"]["assigned_to"] is None


class TestDestroy:
    def test_creator_deletes(self, member):
        task = create_task(member)
        r = client_for(member).delete(f"{TASKS_URL}{task.pk}/")
        assert r.status_code == status.HTTP_200_OK
        assert r.data == {"success": True, "message": "Task deleted successfully"}
        assert not Task.objects.filter(pk=task.pk).exists()

    def test_assignee_may_not_delete(self, member, other_member):
        task = create_task(other_member, assigned_to=member)
        r = client_for(member).delete(f"{TASKS_URL}{task.pk}/")
        assert r.status_code == status.HTTP_403_FORBIDDEN
        assert r.data["message"] == (
            "Access denied. Only task creator, managers, or admins can delete tasks"
        )
        assert Task.objects.filter(pk=task.pk).exists()

    def test_manager_deletes_any_task(self, manager, member):
        task = create_task(member)
        r = client_for(manager).delete(f"{TASKS_URL}{task.pk}/")
        assert r.status_code == status.HTTP_200_OK


class TestComments:
    def test_add_comment(self, member, other_member):
        task = create_task(other_member, assigned_to=member)
        before = task.last_activity
        r = client_for(member).post(
            f"{TASKS_URL}{task.pk}/comments/", {"text": "On it"}, format="json"
        )
        assert r.status_code == status.HTTP_201_CREATED, r.content
        assert r.data["message"] == "Comment added successfully"
        comment = r.data["data"]["comment"]
        assert comment["text"] == "On it"
        assert comment["user"]["id"] == member.pk
        task.refresh_from_db()
        assert task.last_activity >= before

    @pytest.mark.parametrize("text", ["", "x" * 501])
    def test_comment_length(self, member, text):
        task = create_task(member)
        r = client_for(member).post(
            f"{TASKS_URL}{task.pk}/comments/", {"text": text}, format="json"
        )
        assert r.status_code == status.HTTP_400_BAD_REQUEST

    def test_stranger_cannot_comment(self, member, other_member):
        task = create_task(other_member)
        r = client_for(member).post(
            f"{TASKS_URL}{task.pk}/comments/", {"text": "Hi"}, format="json"
        )
        assert r.status_code == status.HTTP_403_FORBIDDEN


class TestSubtasks:
    def test_add_subtask(self, member):
        task = create_task(member)
        r = client_for(member).post(
            f"{TASKS_URL}{task.pk}/subtasks/", {"title": "Draft"}, format="json"
        )
        assert r.status_code == status.HTTP_201_CREATED, r.content
        assert r.data["data"]["subtask"]["completed"] is False
        assert task.subtasks.count() == 1

    def test_title_too_short(self, member):
        task = create_task(member)
        r = client_for(member).post(
            f"{TASKS_URL}{task.pk}/subtasks/", {"title": "ab"}, format="json"
        )
        assert r.status_code == status.HTTP_400_BAD_REQUEST

    def test_complete_subtask(self, member):
        task = create_task(member)
        subtask = Subtask.objects.create(task=task, title="Draft")
        r = client_for(member).put(
            f"{TASKS_URL}{task.pk}/subtasks/{subtask.pk}/",
            {"completed": True},
            format="json",
        )
        assert r.status_code == status.HTTP_200_OK, r.content
        subtask.refresh_from_db()
        assert subtask.completed is True
        assert subtask.title == "Draft"

    def test_subtask_of_another_task(self, member):
        task = create_task(member)
        foreign = Subtask.objects.create(task=create_task(member), title="Other")
        r = client_for(member).put(
            f"{TASKS_URL}{task.pk}/subtasks/{foreign.pk}/",
            {"completed": True},
            format="json",
        )
        assert r.status_code == status.HTTP_404_NOT_FOUND
        assert r.data["message"] == "Subtask not found"


def test_stats_endpoint(member, other_member):
    create_task(member, status=Task.Status.COMPLETED)
    create_task(member)
    create_task(other_member)
    r = client_for(member).get(f"{TASKS_URL}stats/", {"timeframe": 7})
    assert r.status_code == status.HTTP_200_OK
    stats = r.data["data"]["stats"]
    assert stats["total"] == 2
    assert stats["completed"] == 1
    assert stats["completion_rate"] == 50
    assert stats["recent"] == 2


@pytest.mark.parametrize("timeframe", [0, 3651, 1000000])
def test_stats_timeframe_out_of_range(member, timeframe):
    r = client_for(member).get(f"{TASKS_URL}stats/", {"timeframe": timeframe})
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert _fields(r) == {"timeframe"}
