"""Question change projection and publishing.

A committed change is projected once per subscriber class:

* moderator: every change with the full row;
* audience: only rows in a visitor-visible status, with moderator fields
  stripped. A row entering the visible set arrives as ``insert``, one leaving
  it as ``delete``;
* broadcast: only the on-air row. A row going off air arrives as ``update``
  with ``is_broadcasting`` false so the screen clears;
* presenter: rows marked for display in a screen status, entering and leaving
  like the audience view.

Rows are full snapshots, so applying any event is a full-row replace.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any

from django.conf import settings

from livepulse.qna.models import SCREEN_STATUSES
from livepulse.realtime.socketio import emit_event_to_session
from livepulse.realtime.streams import DELETE
from livepulse.realtime.streams import INSERT
from livepulse.realtime.streams import SETTINGS
from livepulse.realtime.streams import UPDATE
from livepulse.realtime.streams import Audience
from livepulse.realtime.streams import Change
from livepulse.realtime.streams import change_stream

if TYPE_CHECKING:  # import for type checking only
    from livepulse.qna.models import Question

logger = logging.getLogger(__name__)

EVENT_NAME = "qna"

AUDIENCE_FIELDS = (
    "id",
    "session_id",
    "content",
    "author_name",
    "is_anonymous",
    "status",
    "is_pinned",
    "is_highlighted",
    "is_broadcasting",
    "is_displayed",
    "presenter",
    "display_order",
    "likes_count",
    "answer",
    "answered_at",
    "created_at",
    "updated_at",
)

BROADCAST_FIELDS = (
    "id",
    "session_id",
    "content",
    "author_name",
    "is_anonymous",
    "is_broadcasting",
    "presenter",
    "answer",
    "updated_at",
)

PRESENTER_FIELDS = (
    "id",
    "session_id",
    "content",
    "author_name",
    "is_anonymous",
    "status",
    "is_pinned",
    "is_broadcasting",
    "is_displayed",
    "presenter",
    "display_order",
    "answer",
    "created_at",
    "updated_at",
)


@dataclass(frozen=True)
class QuestionEvent:
    kind: str
    row: dict[str, Any]

    def as_payload(self) -> dict[str, Any]:
        return {"kind": self.kind, "row": self.row}


def _isoformat(value):
    return value.isoformat() if value is not None else None


def build_question_payload(question: Question) -> dict[str, Any]:
    presenter = None
    if question.presenter_id is not None and question.presenter is not None:
        presenter = {
            "id": question.presenter.id,
            "name": question.presenter.display_name,
            "title": question.presenter.display_title,
        }
    return {
        "id": question.id,
        "session_id": question.session_id,
        "content": question.content,
        "author_name": question.author_name,
        "is_anonymous": question.is_anonymous,
        "status": question.status,
        "is_pinned": question.is_pinned,
        "is_highlighted": question.is_highlighted,
        "is_broadcasting": question.is_broadcasting,
        "is_displayed": question.is_displayed,
        "presenter": presenter,
        "display_order": question.display_order,
        "likes_count": question.likes_count,
        "answer": question.answer,
        "reject_reason": question.reject_reason,
        "created_by_manager": question.created_by_manager,
        "moderated_by": question.moderated_by_id,
        "moderated_at": _isoformat(question.moderated_at),
        "answered_by": question.answered_by_id,
        "answered_at": _isoformat(question.answered_at),
        "version": question.version,
        "created_at": _isoformat(question.created_at),
        "updated_at": _isoformat(question.updated_at),
    }


def _only(row: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    return {field: row.get(field) for field in fields}


def _audience_visible(row: dict[str, Any] | None) -> bool:
    if row is None:
        return False
    return row["status"] in settings.LIVEPULSE_AUDIENCE_VISIBLE_STATUSES


def _on_presenter_screen(row: dict[str, Any] | None) -> bool:
    if row is None:
        return False
    return bool(row["is_displayed"]) and row["status"] in SCREEN_STATUSES


def _on_air(row: dict[str, Any] | None) -> bool:
    return row is not None and bool(row["is_broadcasting"])


def _moderator_events(change: Change) -> list[QuestionEvent]:
    if change.event_type == SETTINGS:
        return []
    return [QuestionEvent(change.event_type, change.row)]


def _membership_events(change, visible, fields) -> list[QuestionEvent]:
    if change.event_type == SETTINGS:
        return []
    was_visible = visible(change.old)
    is_visible = visible(change.new)
    if was_visible and is_visible:
        return [QuestionEvent(UPDATE, _only(change.new, fields))]
    if is_visible:
        return [QuestionEvent(INSERT, _only(change.new, fields))]
    if was_visible:
        return [QuestionEvent(DELETE, _only(change.old, fields))]
    return []


def _audience_events(change: Change) -> list[QuestionEvent]:
    return _membership_events(change, _audience_visible, AUDIENCE_FIELDS)


def _presenter_events(change: Change) -> list[QuestionEvent]:
    return _membership_events(change, _on_presenter_screen, PRESENTER_FIELDS)


def _broadcast_events(change: Change) -> list[QuestionEvent]:
    if change.event_type == SETTINGS:
        return [QuestionEvent(SETTINGS, dict(change.new or {}))]
    was_on_air = _on_air(change.old)
    is_on_air = _on_air(change.new)
    if is_on_air:
        kind = UPDATE if was_on_air else INSERT
        return [QuestionEvent(kind, _only(change.new, BROADCAST_FIELDS))]
    if was_on_air and change.new is None:
        return [QuestionEvent(DELETE, _only(change.old, BROADCAST_FIELDS))]
    if was_on_air:
        return [QuestionEvent(UPDATE, _only(change.new, BROADCAST_FIELDS))]
    return []


_PROJECTIONS = {
    Audience.MODERATOR: _moderator_events,
    Audience.AUDIENCE: _audience_events,
    Audience.BROADCAST: _broadcast_events,
    Audience.PRESENTER: _presenter_events,
}


def events_for(audience: Audience, change: Change) -> list[QuestionEvent]:
    """Project ``change`` into the events ``audience`` should receive."""
    return _PROJECTIONS[Audience(audience)](change)


def publish_change(change: Change) -> None:
    """Publish a committed change in-process and to Socket.IO rooms."""

    change_stream.publish(change)
    for audience in Audience:
        for event in events_for(audience, change):
            try:
                emit_event_to_session(
                    change.session_id, audience, EVENT_NAME, event.as_payload()
                )
            except Exception:
                logger.exception(
                    "Emit of %s to session %s %s room failed",
                    event.kind,
                    change.session_id,
                    audience.value,
                )


def publish_question_change(
    session_id: int,
    old: dict[str, Any] | None,
    new: dict[str, Any] | None,
) -> None:
    if old is None:
        event_type = INSERT
    elif new is None:
        event_type = DELETE
    else:
        event_type = UPDATE
    publish_change(
        Change(session_id=session_id, event_type=event_type, old=old, new=new)
    )


def publish_broadcast_settings(session_id: int, broadcast_settings: dict) -> None:
    publish_change(
        Change(
            session_id=session_id,
            event_type=SETTINGS,
            old=None,
            new=dict(broadcast_settings),
        )
    )
