"""Realtime event catalogue.

Outbound kinds carry their wire names; ``EVENT_SCOPES`` fixes the audience of
each one. Domain publishers (build payload, then broadcast) live in submodules
such as ``events.tasks``; they never create servers or connection handlers.
"""

from __future__ import annotations

import enum


class EventKind(str, enum.Enum):
    TASK_CREATED = "task:created"
    TASK_UPDATED = "task:updated"
    TASK_DELETED = "task:deleted"
    TASK_ASSIGNED = "task:assigned"
    TASK_NEW_COMMENT = "task:new_comment"
    TASK_USER_TYPING = "task:user_typing"
    USER_ONLINE = "user:online"
    USER_OFFLINE = "user:offline"


class EventScope(enum.Enum):
    EVERYONE = "everyone"
    TASK = "task"
    USER = "user"


EVENT_SCOPES: dict[EventKind, EventScope] = {
    EventKind.TASK_CREATED: EventScope.EVERYONE,
    EventKind.TASK_UPDATED: EventScope.TASK,
    EventKind.TASK_DELETED: EventScope.TASK,
    EventKind.TASK_ASSIGNED: EventScope.USER,
    EventKind.TASK_NEW_COMMENT: EventScope.TASK,
    EventKind.TASK_USER_TYPING: EventScope.TASK,
    EventKind.USER_ONLINE: EventScope.EVERYONE,
    EventKind.USER_OFFLINE: EventScope.EVERYONE,
}


class InboundEvent(str, enum.Enum):
    JOIN_TASK = "join:task"
    LEAVE_TASK = "leave:task"
    TASK_UPDATE = "task:update"
    TASK_COMMENT = "task:comment"
    TASK_TYPING = "task:typing"
