"""Liveness endpoint: database and Celery broker, plus realtime stats.

The realtime block is informational only; an empty registry is normal.
"""

from __future__ import annotations

from typing import Any

import redis
from django.conf import settings
from django.db import connection
from django.http import JsonResponse

REQUIRED_COMPONENTS = ("db", "redis")


def check_db() -> dict[str, Any]:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except Exception as exc:  # noqa: BLE001 - reported, never raised
        return {"ok": False, "error": str(exc)}
    return {"ok": True}


def check_redis() -> dict[str, Any]:
    if not settings.REDIS_URL:
        return {"ok": False, "error": "REDIS_URL not configured"}
    client = redis.Redis.from_url(
        settings.REDIS_URL, socket_timeout=0.5, socket_connect_timeout=0.5
    )
    try:
        client.ping()
    except redis.RedisError as exc:
        return {"ok": False, "error": str(exc)}
    finally:
        client.close()
    return {"ok": True}


def realtime_stats() -> dict[str, Any]:
    from hr_connect.realtime.socketio import registry  # noqa: PLC0415

    return {
        "ok": True,
        "online_users": len(registry.online_user_ids()),
        "connections": registry.connection_count(),
    }


def health(request):
    components = {
        "db": check_db(),
        "redis": check_redis(),
        "realtime": realtime_stats(),
    }
    required = [components[name]["ok"] for name in REQUIRED_COMPONENTS]

    if all(required):
        status = "ok"
    elif any(required):
        status = "degraded"
    else:
        status = "down"

    return JsonResponse(
        {"status": status, "components": components},
        status=200 if status == "ok" else 503,
    )
