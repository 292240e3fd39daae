from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from asgiref.sync import async_to_sync

from taskboard.realtime.events import EventKind
from taskboard.realtime.socketio import get_gateway
from taskboard.tasks.api.serializers import CommentSerializer
from taskboard.tasks.api.serializers import TaskSerializer

if TYPE_CHECKING:  # import for type checking only
    from taskboard.tasks.models import Comment
    from taskboard.tasks.models import Task

logger = logging.getLogger(__name__)


def build_task_payload(task: Task) -> dict[str, Any]:
    return dict(TaskSerializer(task).data)


def _publish(kind: EventKind, payload: Any, **target: Any) -> int:
    """Hand one event to the gateway; delivery problems never reach the caller."""
    try:
        return async_to_sync(get_gateway().broadcast)(kind, payload, **target)
    except Exception:
        logger.exception("Realtime publish of %s failed", kind.value)
        return 0


def publish_task_created(task: Task) -> int:
    return _publish(EventKind.TASK_CREATED, build_task_payload(task))


def publish_task_updated(task: Task) -> int:
    return _publish(EventKind.TASK_UPDATED, build_task_payload(task), task_id=task.pk)


def publish_task_deleted(task_id: int) -> int:
    return _publish(EventKind.TASK_DELETED, {"taskId": task_id}, task_id=task_id)


def publish_task_assigned(task: Task, user_id: int) -> int:
    payload = {
        "task": build_task_payload(task),
        "message": f"You have been assigned to task: {task.title}",
    }
    return _publish(EventKind.TASK_ASSIGNED, payload, user_id=user_id)


def publish_comment_added(comment: Comment) -> int:
    payload = {
        "taskId": comment.task_id,
        "comment": dict(CommentSerializer(comment).data),
    }
    return _publish(EventKind.TASK_NEW_COMMENT, payload, task_id=comment.task_id)
