from __future__ import annotations

from rest_framework.permissions import BasePermission

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_USER = "user"

PROFILE_FIELDS = frozenset({"name", "email", "department", "phone", "avatar"})
ADMIN_ONLY_FIELDS = frozenset({"role", "is_active"})


def _role(user) -> str | None:
    if not (user and getattr(user, "is_authenticated", False)):
        return None
    return getattr(user, "role", None)


def is_admin(user) -> bool:
    return _role(user) == ROLE_ADMIN


def is_elevated(user) -> bool:
    return _role(user) in (ROLE_ADMIN, ROLE_MANAGER)


def can_mutate_user(actor, target_id: int, field: str) -> bool:
    """Capability check for edits to a user account.

    - profile fields: the user themself, or an admin/manager
    - ``role`` / ``is_active``: admins only
    - ``delete``: admins only, never their own account
    """
    if _role(actor) is None:
        return False
    is_self = int(getattr(actor, "pk", 0) or 0) == int(target_id)
    if field == "delete":
        return is_admin(actor) and not is_self
    if field in ADMIN_ONLY_FIELDS:
        return is_admin(actor)
    if field in PROFILE_FIELDS:
        return is_self or is_elevated(actor)
    return False


class IsAdminRole(BasePermission):
    """Allow access only to users whose role is admin."""

    message = "Access denied. Admin privileges required."

    def has_permission(self, request, view):
        return is_admin(getattr(request, "user", None))
