"""Query scoping and statistics for tasks."""

from __future__ import annotations

import math
from datetime import timedelta

from django.db.models import Count
from django.db.models import Q
from django.db.models import QuerySet
from django.utils import timezone

from taskboard.users.api.permissions import is_elevated

from .models import Task

CLOSED_STATUSES = (Task.Status.COMPLETED, Task.Status.CANCELLED)


def completion_rate(done: int, total: int) -> int:
    """Whole-number percentage, halves rounded up."""
    if total <= 0:
        return 0
    return math.floor(done * 100 / total + 0.5)


def involvement(user) -> Q:
    return Q(created_by=user) | Q(assigned_to=user)


def visible_tasks(user) -> QuerySet[Task]:
    """Unarchived tasks the user may see: everything when elevated, else their own."""
    qs = Task.objects.filter(is_archived=False)
    if not is_elevated(user):
        qs = qs.filter(involvement(user))
    return qs


def _counts_by(qs: QuerySet[Task], field: str) -> dict[str, int]:
    rows = qs.order_by().values(field).annotate(count=Count("id"))
    return {row[field]: row["count"] for row in rows}


def overdue(qs: QuerySet[Task]) -> QuerySet[Task]:
    return qs.filter(due_date__lt=timezone.now()).exclude(status__in=CLOSED_STATUSES)


def task_stats(user, *, timeframe_days: int = 30) -> dict:
    qs = visible_tasks(user)
    total = qs.count()
    completed = qs.filter(status=Task.Status.COMPLETED).count()
    since = timezone.now() - timedelta(days=timeframe_days)
    return {
        "total": total,
        "completed": completed,
        "in_progress": qs.filter(status=Task.Status.IN_PROGRESS).count(),
        "overdue": overdue(qs).count(),
        "recent": qs.filter(created_at__gte=since).count(),
        "completion_rate": completion_rate(completed, total),
        "by_priority": _counts_by(qs, "priority"),
        "by_status": _counts_by(qs, "status"),
    }


def user_task_stats(user) -> dict:
    """Counts for the caller's own dashboard (``GET /api/auth/stats``)."""
    involved = Task.objects.filter(involvement(user))
    assigned = Task.objects.filter(assigned_to=user)
    total = involved.count()
    completed = involved.filter(status=Task.Status.COMPLETED).count()
    return {
        "total_tasks": total,
        "completed_tasks": completed,
        "assigned_tasks": assigned.exclude(status=Task.Status.COMPLETED).count(),
        "overdue_tasks": overdue(assigned).count(),
        "completion_rate": completion_rate(completed, total),
    }


def assignee_stats(user) -> dict:
    """Workload of one user as seen by ``GET /api/users/<id>/stats``."""
    assigned = Task.objects.filter(assigned_to=user, is_archived=False)
    total = assigned.count()
    completed = assigned.filter(status=Task.Status.COMPLETED).count()
    return {
        "tasks_assigned": total,
        "tasks_completed": completed,
        "tasks_overdue": overdue(assigned).count(),
        "tasks_in_progress": assigned.filter(status=Task.Status.IN_PROGRESS).count(),
        "tasks_created": Task.objects.filter(created_by=user, is_archived=False).count(),
        "completion_rate": completion_rate(completed, total),
        "tasks_by_priority": _counts_by(assigned, "priority"),
    }


def release_open_assignments(user) -> int:
    """Unassign every task of ``user`` that is not completed; returns the row count."""
    return (
        Task.objects.filter(assigned_to=user)
        .exclude(status=Task.Status.COMPLETED)
        .update(assigned_to=None, last_activity=timezone.now())
    )
