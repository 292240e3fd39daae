"""Connection and room membership registry for the realtime gateway.

The registry is the single source of truth for who is connected, which
identity each connection carries and which rooms it belongs to. It is plain
in-process state mutated from the event loop that runs the Socket.IO server,
so it needs no locking.
"""

from __future__ import annotations

import enum
from collections import defaultdict
from dataclasses import dataclass
from dataclasses import field


class ConnectionState(enum.Enum):
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    ADMITTED = "admitted"
    CLOSED = "closed"


@dataclass(frozen=True)
class RealtimeSession:
    """Identity bound to an admitted connection for its whole lifetime."""

    user_id: int
    name: str
    email: str
    role: str = "user"
    team_ids: tuple[int, ...] = field(default_factory=tuple)

    def as_user_payload(self) -> dict[str, object]:
        return {"id": self.user_id, "name": self.name, "email": self.email}


def room_for_user(user_id: int) -> str:
    return f"user_{int(user_id)}"


def room_for_team(team_id: int) -> str:
    return f"team_{int(team_id)}"


def room_for_task(task_id: int | str) -> str:
    return f"task_{coerce_task_id(task_id)}"


def coerce_task_id(value) -> int:
    """Normalise a client-supplied task id; raises ``ValueError`` when unusable."""
    if isinstance(value, bool):
        msg = f"invalid task id: {value!r}"
        raise ValueError(msg)
    if isinstance(value, int):
        task_id = value
    elif isinstance(value, str) and value.strip().isdigit():
        task_id = int(value.strip())
    else:
        msg = f"invalid task id: {value!r}"
        raise ValueError(msg)
    if task_id <= 0:
        msg = f"invalid task id: {value!r}"
        raise ValueError(msg)
    return task_id


class RoomRegistry:
    def __init__(self) -> None:
        self._states: dict[str, ConnectionState] = {}
        self._sessions: dict[str, RealtimeSession] = {}
        self._rooms: dict[str, set[str]] = defaultdict(set)
        self._memberships: dict[str, set[str]] = defaultdict(set)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, sid: str) -> bool:
        return sid in self._sessions

    # Lifecycle

    def open(self, sid: str) -> None:
        self._states[sid] = ConnectionState.CONNECTING

    def begin_auth(self, sid: str) -> None:
        self._states[sid] = ConnectionState.AUTHENTICATING

    def admit(self, sid: str, session: RealtimeSession) -> set[str]:
        """Bind ``session`` to ``sid`` and join its personal and team rooms.

        Returns the rooms joined.
        """
        if self._states.get(sid) is ConnectionState.CLOSED:
            msg = f"connection {sid} is already closed"
            raise ValueError(msg)
        self._sessions[sid] = session
        self._states[sid] = ConnectionState.ADMITTED
        rooms = {room_for_user(session.user_id)}
        rooms.update(room_for_team(team_id) for team_id in session.team_ids)
        for room in rooms:
            self._add(sid, room)
        return rooms

    def close(self, sid: str) -> RealtimeSession | None:
        """Drop ``sid`` from every room; returns its session if it was admitted."""
        for room in self._memberships.pop(sid, set()):
            members = self._rooms.get(room)
            if members is None:
                continue
            members.discard(sid)
            if not members:
                del self._rooms[room]
        self._states[sid] = ConnectionState.CLOSED
        return self._sessions.pop(sid, None)

    def forget(self, sid: str) -> None:
        """Remove every trace of ``sid``, including its closed state."""
        self.close(sid)
        self._states.pop(sid, None)

    def clear(self) -> None:
        self._states.clear()
        self._sessions.clear()
        self._rooms.clear()
        self._memberships.clear()

    # Membership

    def join(self, sid: str, room: str) -> bool:
        """Idempotent; returns ``True`` when the connection was not yet a member."""
        self._require_admitted(sid)
        if room in self._memberships[sid]:
            return False
        self._add(sid, room)
        return True

    def leave(self, sid: str, room: str) -> bool:
        """Idempotent; returns ``True`` when the connection was a member."""
        self._require_admitted(sid)
        if room not in self._memberships[sid]:
            return False
        self._memberships[sid].discard(room)
        members = self._rooms.get(room)
        if members is not None:
            members.discard(sid)
            if not members:
                del self._rooms[room]
        return True

    # Queries

    def state(self, sid: str) -> ConnectionState | None:
        return self._states.get(sid)

    def session(self, sid: str) -> RealtimeSession | None:
        return self._sessions.get(sid)

    def is_admitted(self, sid: str) -> bool:
        return self._states.get(sid) is ConnectionState.ADMITTED

    def members(self, room: str) -> frozenset[str]:
        return frozenset(self._rooms.get(room, ()))

    def rooms_of(self, sid: str) -> frozenset[str]:
        return frozenset(self._memberships.get(sid, ()))

    def admitted(self) -> frozenset[str]:
        return frozenset(self._sessions)

    def connections_of(self, user_id: int) -> frozenset[str]:
        return self.members(room_for_user(user_id))

    def _add(self, sid: str, room: str) -> None:
        self._rooms[room].add(sid)
        self._memberships[sid].add(room)

    def _require_admitted(self, sid: str) -> None:
        if not self.is_admitted(sid):
            raise KeyError(sid)
