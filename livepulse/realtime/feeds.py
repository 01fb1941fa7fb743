"""Client-side views of a session, kept current by projected events.

Each feed holds full row snapshots keyed by id. ``apply`` is a full-row
replace, so events delivered twice or out of commit order for different rows
still converge. ``load`` replaces the whole state from a fresh fetch.
"""

from __future__ import annotations

import threading
from typing import Any

from livepulse.live.models import LiveSession
from livepulse.qna.models import Question
from livepulse.realtime.events.questions import AUDIENCE_FIELDS
from livepulse.realtime.events.questions import BROADCAST_FIELDS
from livepulse.realtime.events.questions import PRESENTER_FIELDS
from livepulse.realtime.events.questions import QuestionEvent
from livepulse.realtime.events.questions import build_question_payload
from livepulse.realtime.streams import DELETE
from livepulse.realtime.streams import SETTINGS
from livepulse.realtime.streams import Audience

# Renderer defaults; stored settings are merged on top, shallowly.
DEFAULT_BROADCAST_SETTINGS = {
    "width": 0,
    "fontSize": 150,
    "fontColor": "#c0392b",
    "backgroundColor": "#ffffff",
    "borderColor": "",
    "innerBackgroundColor": "",
    "textAlign": "center",
    "verticalAlign": "center",
}


def _project(question: Question, fields: tuple[str, ...]) -> dict[str, Any]:
    row = build_question_payload(question)
    return {field: row[field] for field in fields}


def load_moderator_rows(session_id: int) -> list[dict[str, Any]]:
    queryset = (
        Question.objects.in_session(session_id)
        .select_related("presenter")
        .console_order()
    )
    return [build_question_payload(question) for question in queryset]


def load_audience_rows(session_id: int) -> list[dict[str, Any]]:
    queryset = (
        Question.objects.in_session(session_id)
        .audience_visible()
        .select_related("presenter")
        .audience_order()
    )
    return [_project(question, AUDIENCE_FIELDS) for question in queryset]


def load_presenter_rows(session_id: int) -> list[dict[str, Any]]:
    queryset = (
        Question.objects.in_session(session_id)
        .on_presenter_screen()
        .select_related("presenter")
        .presenter_order()
    )
    return [_project(question, PRESENTER_FIELDS) for question in queryset]


def load_broadcast_state(session_id: int) -> dict[str, Any]:
    session = LiveSession.objects.filter(pk=session_id).first()
    question = (
        Question.objects.in_session(session_id)
        .broadcasting()
        .select_related("presenter")
        .first()
    )
    return {
        "question": _project(question, BROADCAST_FIELDS) if question else None,
        "settings": dict(session.broadcast_settings) if session else {},
    }


class QuestionFeed:
    audience: Audience

    def __init__(self):
        self._lock = threading.Lock()
        self._rows: dict[int, dict[str, Any]] = {}

    @staticmethod
    def loader(session_id: int) -> list[dict[str, Any]]:
        raise NotImplementedError

    def load(self, rows: list[dict[str, Any]]) -> None:
        with self._lock:
            self._rows = {row["id"]: dict(row) for row in rows}

    def apply(self, event: QuestionEvent) -> None:
        with self._lock:
            if event.kind == DELETE:
                self._rows.pop(event.row["id"], None)
            else:
                self._rows[event.row["id"]] = dict(event.row)

    def get(self, question_id: int) -> dict[str, Any] | None:
        with self._lock:
            return self._rows.get(question_id)

    @property
    def rows(self) -> list[dict[str, Any]]:
        with self._lock:
            rows = list(self._rows.values())
        return self.sort(rows)

    def sort(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return rows


class ModeratorFeed(QuestionFeed):
    audience = Audience.MODERATOR
    loader = staticmethod(load_moderator_rows)

    def sort(self, rows):
        rows.sort(key=lambda row: row["created_at"] or "", reverse=True)
        rows.sort(
            key=lambda row: (
                row["display_order"],
                not row["is_pinned"],
                not row["is_highlighted"],
            )
        )
        return rows


class AudienceFeed(QuestionFeed):
    audience = Audience.AUDIENCE
    loader = staticmethod(load_audience_rows)

    def __init__(self, sort: str = "popular"):
        super().__init__()
        self.sort_mode = sort

    def sort(self, rows):
        rows.sort(
            key=lambda row: row["created_at"] or "",
            reverse=self.sort_mode != "oldest",
        )
        if self.sort_mode == "popular":
            rows.sort(
                key=lambda row: (
                    not row["is_pinned"],
                    not row["is_highlighted"],
                    -row["likes_count"],
                )
            )
        return rows


class PresenterFeed(QuestionFeed):
    """Questions the moderator put on the presenter's screen, in running order."""

    audience = Audience.PRESENTER
    loader = staticmethod(load_presenter_rows)

    def sort(self, rows):
        rows.sort(key=lambda row: row["created_at"] or "")
        rows.sort(key=lambda row: (row["display_order"], not row["is_pinned"]))
        return rows


class BroadcastFeed:
    """The single on-air row plus the screen's styling."""

    audience = Audience.BROADCAST
    loader = staticmethod(load_broadcast_state)

    def __init__(self):
        self._lock = threading.Lock()
        self.question: dict[str, Any] | None = None
        self._settings: dict[str, Any] = {}

    @property
    def settings(self) -> dict[str, Any]:
        return {**DEFAULT_BROADCAST_SETTINGS, **self._settings}

    def load(self, state: dict[str, Any]) -> None:
        with self._lock:
            self.question = state.get("question")
            self._settings = dict(state.get("settings") or {})

    def apply(self, event: QuestionEvent) -> None:
        with self._lock:
            if event.kind == SETTINGS:
                self._settings = dict(event.row)
            elif event.kind != DELETE and event.row.get("is_broadcasting"):
                self.question = dict(event.row)
            elif self.question is not None and self.question["id"] == event.row["id"]:
                self.question = None
