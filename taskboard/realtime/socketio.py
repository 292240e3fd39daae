"""Process-wide Socket.IO server and realtime gateway.

Frontend convention:
- URL base: ws://<host>:8000
- Socket.IO path: ``settings.REALTIME_SOCKETIO_PATH`` (default ``/socket.io/``)
- Auth: ``auth.token`` in the handshake, or ``?token=`` (JWT access token)

``config.asgi`` mounts ``sio`` in front of Django. Sync Django code publishes
through ``taskboard.realtime.events`` rather than emitting here directly.
"""

from __future__ import annotations

import socketio
from channels.db import database_sync_to_async
from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed

from taskboard.tasks.api.permissions import can_view_task
from taskboard.tasks.models import Task
from taskboard.users.models import User
from taskboard.users.tokens import verify_token

from .gateway import RealtimeGateway
from .rooms import RealtimeSession


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.REALTIME_CORS_ALLOWED_ORIGINS,
    logger=False,
    engineio_logger=False,
)


def _resolve_session(token: str) -> RealtimeSession:
    """Verify ``token`` and load the identity bound to a new connection."""
    user_id = verify_token(token)
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        msg = "Token is valid but user no longer exists"
        raise AuthenticationFailed(msg)
    if not user.is_active:
        msg = "User account is deactivated"
        raise AuthenticationFailed(msg)
    team_ids = tuple(user.teams.order_by("id").values_list("id", flat=True))
    return RealtimeSession(
        user_id=int(user.pk),
        name=user.name,
        email=user.email,
        role=user.role,
        team_ids=team_ids,
    )


def _may_join_task(session: RealtimeSession, task_id: int) -> bool:
    task = Task.objects.filter(pk=task_id).first()
    user = User.objects.filter(pk=session.user_id, is_active=True).first()
    if task is None or user is None:
        return False
    return can_view_task(user, task)


resolve_session = database_sync_to_async(_resolve_session)
may_join_task = database_sync_to_async(_may_join_task)


gateway = RealtimeGateway(
    sio,
    authenticate=resolve_session,
    can_join=may_join_task if settings.REALTIME_GATE_TASK_JOINS else None,
)
gateway.register()


def get_gateway() -> RealtimeGateway:
    return gateway
