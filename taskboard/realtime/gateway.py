"""Realtime gateway: connection admission, room membership and event fan-out.

The gateway owns a ``RoomRegistry`` and drives a python-socketio
``AsyncServer`` purely as a transport: every delivery is an ``emit`` to a
single connection id, resolved from the registry, so room semantics (and the
exclusion of the originating connection) are decided here rather than inside
the Socket.IO manager.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qs

from django.utils import timezone
from rest_framework.exceptions import AuthenticationFailed
from socketio import exceptions as sio_exceptions

from .events import EVENT_SCOPES
from .events import EventKind
from .events import EventScope
from .events import InboundEvent
from .rooms import ConnectionState
from .rooms import RealtimeSession
from .rooms import RoomRegistry
from .rooms import coerce_task_id
from .rooms import room_for_task
from .rooms import room_for_user

logger = logging.getLogger(__name__)

Authenticator = Callable[[str], Awaitable[RealtimeSession]]
JoinCheck = Callable[[RealtimeSession, int], Awaitable[bool]]


def _extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Credential from the handshake ``auth`` payload, else the ``token`` query param.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token
    return None


def _refusal_reason(exc: AuthenticationFailed) -> str:
    if "expired" in str(exc.detail).lower():
        return "jwt_expired"
    return "unauthorized"


def _task_id_from(data: Any) -> Any:
    if isinstance(data, dict):
        return data.get("taskId", data.get("task_id"))
    return data


class RealtimeGateway:
    def __init__(
        self,
        server,
        *,
        authenticate: Authenticator,
        registry: RoomRegistry | None = None,
        can_join: JoinCheck | None = None,
    ) -> None:
        self.server = server
        self.registry = registry if registry is not None else RoomRegistry()
        self._authenticate = authenticate
        self._can_join = can_join
        self._handlers: dict[InboundEvent, Callable[..., Awaitable[Any]]] = {
            InboundEvent.JOIN_TASK: self.join_task,
            InboundEvent.LEAVE_TASK: self.leave_task,
            InboundEvent.TASK_UPDATE: self.relay_update,
            InboundEvent.TASK_COMMENT: self.relay_comment,
            InboundEvent.TASK_TYPING: self.relay_typing,
        }

    @property
    def handlers(self) -> dict[InboundEvent, Callable[..., Awaitable[Any]]]:
        return dict(self._handlers)

    def register(self) -> None:
        """Bind connect/disconnect and one handler per inbound event on the server."""
        self.server.on("connect", self.connect)
        self.server.on("disconnect", self.disconnect)
        for event, handler in self._handlers.items():
            self.server.on(event.value, handler)

    # Admission

    async def connect(self, sid: str, environ: dict[str, Any], auth: Any | None = None):
        self.registry.open(sid)
        token = _extract_token(environ, auth)
        if not token:
            self._refuse(sid, "unauthorized")

        self.registry.begin_auth(sid)
        try:
            session = await self._authenticate(token)
        except AuthenticationFailed as exc:
            self._refuse(sid, _refusal_reason(exc), exc)
        except Exception as exc:
            logger.exception("Socket.IO connect error")
            self._refuse(sid, "server_error", exc)

        if self.registry.state(sid) is not ConnectionState.AUTHENTICATING:
            # The transport went away while the credential was being checked.
            self.registry.forget(sid)
            msg = "unauthorized"
            raise sio_exceptions.ConnectionRefusedError(msg)

        rooms = self.registry.admit(sid, session)
        logger.info(
            "User %s connected (%s), rooms=%s", session.user_id, sid, sorted(rooms)
        )
        await self.broadcast(
            EventKind.USER_ONLINE, self._presence_payload(session), origin=sid
        )
        return True

    def _refuse(self, sid: str, reason: str, cause: Exception | None = None):
        self.registry.forget(sid)
        logger.info("Refused connection %s: %s", sid, reason)
        raise sio_exceptions.ConnectionRefusedError(reason) from cause

    async def disconnect(self, sid: str, reason: Any = None) -> None:
        session = self.registry.close(sid)
        if session is None:
            self.registry.forget(sid)
            return
        logger.info("User %s disconnected (%s)", session.user_id, sid)
        await self.broadcast(EventKind.USER_OFFLINE, self._presence_payload(session))
        self.registry.forget(sid)

    @staticmethod
    def _presence_payload(session: RealtimeSession) -> dict[str, Any]:
        return {"userId": session.user_id, "name": session.name, "email": session.email}

    # Room control

    async def join_task(self, sid: str, data: Any = None) -> dict[str, Any]:
        session = self.registry.session(sid)
        if session is None:
            return {"ok": False, "error": "not_admitted"}
        try:
            task_id = coerce_task_id(_task_id_from(data))
        except ValueError:
            return {"ok": False, "error": "invalid_task_id"}
        if self._can_join is not None and not await self._can_join(session, task_id):
            return {"ok": False, "error": "forbidden"}
        room = room_for_task(task_id)
        if self.registry.join(sid, room):
            logger.debug("User %s joined %s", session.user_id, room)
        return {"ok": True, "room": room}

    async def leave_task(self, sid: str, data: Any = None) -> dict[str, Any]:
        if not self.registry.is_admitted(sid):
            return {"ok": False, "error": "not_admitted"}
        try:
            task_id = coerce_task_id(_task_id_from(data))
        except ValueError:
            return {"ok": False, "error": "invalid_task_id"}
        room = room_for_task(task_id)
        self.registry.leave(sid, room)
        return {"ok": True, "room": room}

    # Client signal relays

    async def relay_update(self, sid: str, data: Any = None) -> int:
        return await self._relay(sid, data, EventKind.TASK_UPDATED, lambda s, d: d)

    async def relay_comment(self, sid: str, data: Any = None) -> int:
        def enrich(session: RealtimeSession, payload: dict[str, Any]):
            return {
                **payload,
                "user": session.as_user_payload(),
                "timestamp": timezone.now().isoformat(),
            }

        return await self._relay(sid, data, EventKind.TASK_NEW_COMMENT, enrich)

    async def relay_typing(self, sid: str, data: Any = None) -> int:
        def describe(session: RealtimeSession, payload: dict[str, Any]):
            return {
                "userId": session.user_id,
                "userName": session.name,
                "isTyping": bool(payload.get("isTyping")),
                "taskId": payload.get("taskId"),
            }

        return await self._relay(sid, data, EventKind.TASK_USER_TYPING, describe)

    async def _relay(self, sid, data, kind: EventKind, build) -> int:
        session = self.registry.session(sid)
        if session is None or not isinstance(data, dict):
            return 0
        try:
            task_id = coerce_task_id(_task_id_from(data))
        except ValueError:
            return 0
        return await self.broadcast(
            kind, build(session, data), task_id=task_id, origin=sid
        )

    # Fan-out

    def recipients(
        self,
        kind: EventKind,
        *,
        task_id: int | None = None,
        user_id: int | None = None,
    ) -> frozenset[str]:
        scope = EVENT_SCOPES[kind]
        if scope is EventScope.EVERYONE:
            return self.registry.admitted()
        if scope is EventScope.TASK:
            if task_id is None:
                msg = f"{kind.value} needs a task id"
                raise ValueError(msg)
            return self.registry.members(room_for_task(task_id))
        if user_id is None:
            msg = f"{kind.value} needs a user id"
            raise ValueError(msg)
        return self.registry.members(room_for_user(user_id))

    async def broadcast(
        self,
        kind: EventKind,
        payload: Any,
        *,
        task_id: int | None = None,
        user_id: int | None = None,
        origin: str | None = None,
    ) -> int:
        """Emit ``payload`` once to every recipient of ``kind``; returns deliveries.

        Recipients are snapshotted up front. Connections that close while the
        fan-out is in progress are skipped and a failed emit does not stop it.
        """
        targets = sorted(
            self.recipients(kind, task_id=task_id, user_id=user_id) - {origin}
        )
        delivered = 0
        for sid in targets:
            if not self.registry.is_admitted(sid):
                continue
            try:
                await self.server.emit(kind.value, payload, to=sid)
            except Exception:
                logger.exception("Failed to deliver %s to %s", kind.value, sid)
                continue
            delivered += 1
        return delivered

    async def broadcast_task_event(
        self, kind: EventKind, task_id: int, payload: Any, *, origin: str | None = None
    ) -> int:
        return await self.broadcast(kind, payload, task_id=task_id, origin=origin)

    async def notify_assignment(self, user_id: int, payload: Any) -> int:
        return await self.broadcast(EventKind.TASK_ASSIGNED, payload, user_id=user_id)
