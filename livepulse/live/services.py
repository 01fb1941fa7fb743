"""Presenter directory and broadcast settings for a live session.

Presenters come in three kinds (``SessionPresenter.PresenterType``). Each
kind has one builder in ``_PRESENTER_BUILDERS``; the table is checked against
the enum at import time so a new kind cannot ship without one.
"""

from __future__ import annotations

import logging
from typing import Any

from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError
from django.db import models
from django.db import transaction

from livepulse.live.models import LiveSession
from livepulse.live.models import SessionPresenter
from livepulse.qna.exceptions import NotFoundError
from livepulse.qna.exceptions import PersistenceError
from livepulse.qna.exceptions import ValidationError
from livepulse.qna.services.common import PERSISTENCE_MESSAGE
from livepulse.realtime.events.questions import publish_broadcast_settings

logger = logging.getLogger(__name__)

PresenterType = SessionPresenter.PresenterType


def get_session(session_id: int) -> LiveSession:
    session = LiveSession.objects.filter(pk=session_id).first()
    if session is None:
        msg = f"Session {session_id} does not exist."
        raise NotFoundError(msg)
    return session


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _required(value: Any, field: str) -> str:
    text = _text(value)
    if not text:
        msg = f"{field.replace('_', ' ').capitalize()} is required."
        raise ValidationError(msg, field=field)
    return text


def _build_member(data: dict[str, Any]) -> dict[str, Any]:
    user = data.get("user")
    if user is None:
        msg = "A team member presenter needs a user."
        raise ValidationError(msg, field="user")
    name = _text(data.get("name")) or user.get_full_name() or user.get_username()
    return {
        "user": user,
        "display_name": name,
        "display_title": _text(data.get("title")),
        "status": data.get("status") or SessionPresenter.Status.PENDING,
    }


def _build_partner(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "partner_ref": _required(data.get("partner_ref"), "partner_ref"),
        "display_name": _required(data.get("name"), "name"),
        "display_title": _text(data.get("title")),
        "status": data.get("status") or SessionPresenter.Status.PENDING,
    }


def _build_manual(data: dict[str, Any]) -> dict[str, Any]:
    # Typed in by the organizer, so there is no invitation to confirm.
    return {
        "display_name": _required(data.get("name"), "name"),
        "display_title": _text(data.get("title")),
        "manual_bio": _text(data.get("bio")),
        "manual_image": _text(data.get("image")),
        "status": SessionPresenter.Status.CONFIRMED,
    }


_PRESENTER_BUILDERS = {
    PresenterType.MEMBER: _build_member,
    PresenterType.PARTNER: _build_partner,
    PresenterType.MANUAL: _build_manual,
}

_missing_builders = set(PresenterType) - set(_PRESENTER_BUILDERS)
if _missing_builders:
    msg = f"No presenter builder for {sorted(_missing_builders)}."
    raise ImproperlyConfigured(msg)


def add_presenter(
    session_id: int,
    presenter_type: str,
    data: dict[str, Any],
) -> SessionPresenter:
    """Add a presenter of any kind at the end of the session's presenter list."""

    try:
        kind = PresenterType(presenter_type)
    except ValueError as exc:
        msg = f"Unknown presenter type '{presenter_type}'."
        raise ValidationError(msg, field="presenter_type") from exc
    fields = _PRESENTER_BUILDERS[kind](data)

    try:
        with transaction.atomic():
            session = (
                LiveSession.objects.select_for_update().filter(pk=session_id).first()
            )
            if session is None:
                msg = f"Session {session_id} does not exist."
                raise NotFoundError(msg)
            top = session.presenters.aggregate(top=models.Max("display_order"))["top"]
            presenter = SessionPresenter.objects.create(
                session=session,
                presenter_type=kind,
                display_order=0 if top is None else top + 1,
                **fields,
            )
    except DatabaseError as exc:
        logger.exception("Adding a presenter to session %s failed", session_id)
        raise PersistenceError(PERSISTENCE_MESSAGE) from exc

    logger.info(
        "Presenter %s (%s) added to session %s", presenter.pk, kind, session_id
    )
    return presenter


def add_manual_presenter(
    session_id: int,
    name: str,
    title: str = "",
    bio: str = "",
    image: str = "",
) -> SessionPresenter:
    return add_presenter(
        session_id,
        PresenterType.MANUAL,
        {"name": name, "title": title, "bio": bio, "image": image},
    )


def confirmed_presenters(session_id: int):
    return SessionPresenter.objects.filter(
        session_id=session_id,
        status=SessionPresenter.Status.CONFIRMED,
    ).order_by("display_order", "created_at")


def update_broadcast_settings(session_id: int, broadcast_settings: Any) -> LiveSession:
    """Replace the session's broadcast styling; the object is stored as given."""

    if not isinstance(broadcast_settings, dict):
        msg = "Broadcast settings must be a JSON object."
        raise ValidationError(msg, field="broadcast_settings")

    session = get_session(session_id)
    session.broadcast_settings = broadcast_settings
    try:
        session.save(update_fields=["broadcast_settings"])
    except DatabaseError as exc:
        logger.exception("Saving broadcast settings of session %s failed", session_id)
        raise PersistenceError(PERSISTENCE_MESSAGE) from exc

    stored = dict(broadcast_settings)
    transaction.on_commit(
        lambda: publish_broadcast_settings(session_id, stored), robust=True
    )
    logger.info("Session %s broadcast settings updated", session_id)
    return session
