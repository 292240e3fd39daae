from __future__ import annotations

from rest_framework.permissions import SAFE_METHODS
from rest_framework.permissions import BasePermission

from taskboard.users.api.permissions import is_elevated


def _is_creator(user, task) -> bool:
    return task.created_by_id == getattr(user, "pk", None)


def _is_assignee(user, task) -> bool:
    return task.assigned_to_id is not None and task.assigned_to_id == getattr(
        user, "pk", None
    )


def can_view_task(user, task) -> bool:
    """Admins and managers see every task; others only their own or assigned ones."""
    if not (user and getattr(user, "is_authenticated", False)):
        return False
    return is_elevated(user) or _is_creator(user, task) or _is_assignee(user, task)


def can_mutate_task(user, task, *, delete: bool = False) -> bool:
    """Edit follows the view rule; deletion is closed to a mere assignee."""
    if not delete:
        return can_view_task(user, task)
    if not (user and getattr(user, "is_authenticated", False)):
        return False
    return is_elevated(user) or _is_creator(user, task)


class TaskAccessPermission(BasePermission):
    message = "Access denied"
    delete_message = (
        "Access denied. Only task creator, managers, or admins can delete tasks"
    )

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return can_view_task(request.user, obj)
        if request.method == "DELETE":
            allowed = can_mutate_task(request.user, obj, delete=True)
            if not allowed:
                self.message = self.delete_message
            return allowed
        return can_mutate_task(request.user, obj)
