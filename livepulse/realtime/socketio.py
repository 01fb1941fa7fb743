"""Socket.IO server for live Q&A clients.

Frontend convention:
- URL base: ws://<host>:8000
- Socket.IO path: /ws/live/ (``SOCKETIO_PATH``)
- Auth: optional `query.token` or `auth.token` (JWT access token). Audience,
  presenter and broadcast screens connect anonymously; the moderator role
  needs a token.

After connecting a client emits ``watch_session`` with
``{"session_id": <id>, "role": <audience>}`` (one of ``moderator``,
``audience``, ``presenter``, ``broadcast``) and receives ``qna`` events for
that session until ``unwatch_session`` or disconnect. On reconnect the client
refetches the list over HTTP; missed events are not replayed.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qs

import socketio
from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError

from livepulse.live.models import LiveSession

from .streams import Audience

logger = logging.getLogger(__name__)


def _client_manager():
    url = getattr(settings, "SOCKETIO_MESSAGE_QUEUE", "")
    if not url:
        return None
    # Fan out across ASGI workers through Redis pub/sub.
    return socketio.AsyncRedisManager(url)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins="*",
    client_manager=_client_manager(),
    logger=False,
    engineio_logger=False,
)


def room_for_session(session_id: int, audience: Audience | str) -> str:
    return f"session_{int(session_id)}_{Audience(audience).value}"


@database_sync_to_async
def _get_user_id_from_access_token(token: str) -> int:
    jwt_auth = JWTAuthentication()
    validated = jwt_auth.get_validated_token(token)
    user = jwt_auth.get_user(validated)
    return int(user.id)


@database_sync_to_async
def _session_exists(session_id: int) -> bool:
    return LiveSession.objects.filter(pk=session_id).exists()


def _extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Extract JWT token from Socket.IO environ/auth.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

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

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    return None


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    token = _extract_token(environ, auth)
    user_id = None
    if token:
        try:
            user_id = await _get_user_id_from_access_token(token)
        except TokenError as exc:
            message = str(exc)
            if "expired" in message.lower():
                msg = "jwt_expired"
                raise ConnectionRefusedError(msg) from exc
            msg = "unauthorized"
            raise ConnectionRefusedError(msg) from exc
        except AuthenticationFailed as exc:  # user not found / inactive, etc.
            msg = "unauthorized"
            raise ConnectionRefusedError(msg) from exc
        except Exception as exc:
            logger.exception("Socket.IO connect error")
            msg = "server_error"
            raise ConnectionRefusedError(msg) from exc

    await sio.save_session(sid, {"user_id": user_id, "rooms": []})


@sio.event
async def disconnect(sid: str):
    _ = sid


def _parse_session_id(data: Any) -> int | None:
    if not isinstance(data, dict):
        return None
    try:
        return int(data.get("session_id"))
    except (TypeError, ValueError):
        return None


@sio.event
async def watch_session(sid: str, data: Any):
    session_id = _parse_session_id(data)
    if session_id is None:
        return {"ok": False, "error": "invalid_session"}
    try:
        audience = Audience(data.get("role", Audience.AUDIENCE))
    except ValueError:
        return {"ok": False, "error": "invalid_role"}

    session = await sio.get_session(sid)
    if audience is Audience.MODERATOR and not session.get("user_id"):
        return {"ok": False, "error": "unauthorized"}
    if not await _session_exists(session_id):
        return {"ok": False, "error": "not_found"}

    room = room_for_session(session_id, audience)
    await sio.enter_room(sid, room)
    rooms = session.setdefault("rooms", [])
    if room not in rooms:
        rooms.append(room)
    await sio.save_session(sid, session)
    logger.info("Socket %s watching %s", sid, room)
    return {"ok": True, "room": room}


@sio.event
async def unwatch_session(sid: str, data: Any):
    session_id = _parse_session_id(data)
    if session_id is None:
        return {"ok": False, "error": "invalid_session"}

    session = await sio.get_session(sid)
    prefix = f"session_{session_id}_"
    remaining = []
    for room in session.get("rooms", []):
        if room.startswith(prefix):
            await sio.leave_room(sid, room)
        else:
            remaining.append(room)
    session["rooms"] = remaining
    await sio.save_session(sid, session)
    return {"ok": True}


def emit_event_to_room(room: str, event: str, payload: dict[str, Any]) -> None:
    """Emit an event to a room from sync Django code."""

    async_to_sync(sio.emit)(event, payload, room=room)


def emit_event_to_session(
    session_id: int,
    audience: Audience,
    event: str,
    payload: dict[str, Any],
) -> None:
    emit_event_to_room(room_for_session(session_id, audience), event, payload)
