"""Liveness for the moderation store and the realtime fanout.

``db`` proves questions can be read and written. ``realtime`` reports which
Socket.IO client manager fans events out. With ``SOCKETIO_MESSAGE_QUEUE``
set, it also pings the Redis queue that connects the ASGI workers.
"""

from __future__ import annotations

from typing import Any

import redis
from django.conf import settings
from django.db import connection
from django.http import JsonResponse


def check_db() -> dict[str, Any]:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except Exception as exc:  # noqa: BLE001 - health must degrade, not crash
        return {"ok": False, "error": str(exc)}
    return {"ok": True, "vendor": connection.vendor}


def check_realtime() -> dict[str, Any]:
    url = getattr(settings, "SOCKETIO_MESSAGE_QUEUE", "")
    if not url:
        # Single worker: events reach only the rooms of this process.
        return {"ok": True, "backend": "in-process"}
    try:
        redis.Redis.from_url(
            url,
            socket_timeout=0.5,
            socket_connect_timeout=0.5,
        ).ping()
    except Exception as exc:  # noqa: BLE001 - health must degrade, not crash
        return {"ok": False, "backend": "redis", "error": str(exc)}
    return {"ok": True, "backend": "redis"}


def health(request):
    components = {"db": check_db(), "realtime": check_realtime()}
    healthy = [part["ok"] for part in components.values()]

    if all(healthy):
        status, http_status = "ok", 200
    else:
        status = "degraded" if any(healthy) else "down"
        http_status = 503
    return JsonResponse(
        {"status": status, "components": components},
        status=http_status,
    )
