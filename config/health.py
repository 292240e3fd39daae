from __future__ import annotations

from typing import Any

from django.db import connection
from django.db import transaction
from django.http import JsonResponse
from django.utils import timezone

from taskboard.realtime.socketio import get_gateway


def check_db() -> dict[str, Any]:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except Exception as exc:  # noqa: BLE001 - health must degrade, not crash
        return {"ok": False, "error": str(exc)}
    else:
        return {"ok": True}


def check_realtime() -> dict[str, Any]:
    try:
        connections = len(get_gateway().registry)
    except Exception as exc:  # noqa: BLE001 - health must degrade, not crash
        return {"ok": False, "error": str(exc)}
    else:
        return {"ok": True, "connections": connections}


# Outside ATOMIC_REQUESTS so a dead database still yields the 503 body.
@transaction.non_atomic_requests
def health(request):
    db = check_db()
    realtime = check_realtime()
    components = {"db": db, "realtime": realtime}

    all_ok = all(v.get("ok", False) for v in components.values())
    status = "ok" if all_ok else ("degraded" if db["ok"] else "down")
    # The database is the only hard dependency of the API.
    http_status = 200 if db["ok"] else 503

    return JsonResponse(
        {
            "status": status,
            "message": "Task Management API is running"
            if db["ok"]
            else "Database unavailable",
            "timestamp": timezone.now().isoformat(),
            "components": components,
        },
        status=http_status,
    )
