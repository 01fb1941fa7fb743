"""Moderation state machine for session questions.

Statuses::

    pending --approve--> approved --answer--> answered --answer--> answered
       |                   |   ^                  |
     reject               hide unhide            hide
       v                   v   |                  v
    rejected              hidden <----------------+

``unhide`` always lands on ``approved``; a question that was answered before
it was hidden comes back unanswered in status (its ``answer`` text is kept).

Pin, highlight, display, broadcast and presenter assignment are flags on top
of the status. Display and broadcast start need a status that can be put on a
screen (``SCREEN_STATUSES``); ``hide`` takes the question off both screens in
the same write.

Every operation takes the acting user from the identity layer and an optional
``expected_version``; without it writes are last-writer-wins.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from django.utils import timezone

from livepulse.live.models import SessionPresenter
from livepulse.qna.exceptions import ValidationError
from livepulse.qna.models import SCREEN_STATUSES
from livepulse.qna.models import Question

from .common import locked_question
from .common import require_status
from .common import save_fields
from .common import set_flag

logger = logging.getLogger(__name__)

Status = Question.Status


class Transition(NamedTuple):
    sources: frozenset[str]
    target: str


TRANSITIONS: dict[str, Transition] = {
    "approve": Transition(frozenset({Status.PENDING}), Status.APPROVED),
    "reject": Transition(frozenset({Status.PENDING}), Status.REJECTED),
    "answer": Transition(frozenset({Status.APPROVED, Status.ANSWERED}), Status.ANSWERED),
    "hide": Transition(frozenset({Status.APPROVED, Status.ANSWERED}), Status.HIDDEN),
    "unhide": Transition(frozenset({Status.HIDDEN}), Status.APPROVED),
}

# Operations gated on status without changing it.
STATUS_GATED = {
    "toggle_display": SCREEN_STATUSES,
    "start_broadcast": SCREEN_STATUSES,
}


def can_transition(status: str, operation: str) -> bool:
    """Return True if ``operation`` is legal for a question in ``status``."""
    if operation in TRANSITIONS:
        return status in TRANSITIONS[operation].sources
    if operation in STATUS_GATED:
        return status in STATUS_GATED[operation]
    # Pin, highlight, presenter assignment, broadcast stop and delete.
    return True


def _transition(
    question_id: int,
    operation: str,
    *,
    expected_version: int | None = None,
    **changes,
) -> Question:
    transition = TRANSITIONS[operation]
    with locked_question(question_id, expected_version=expected_version) as question:
        require_status(question, operation, transition.sources)
        previous = question.status
        question.status = transition.target
        for field, value in changes.items():
            setattr(question, field, value)
        save_fields(question, "status", *changes)
    logger.info(
        "Question %s %s: %s -> %s", question.pk, operation, previous, question.status
    )
    return question


def approve(question_id: int, *, actor=None, expected_version: int | None = None):
    return _transition(
        question_id,
        "approve",
        expected_version=expected_version,
        moderated_by=actor,
        moderated_at=timezone.now(),
    )


def reject(
    question_id: int,
    reason: str | None = None,
    *,
    actor=None,
    expected_version: int | None = None,
):
    reason = (reason or "").strip() or None
    return _transition(
        question_id,
        "reject",
        expected_version=expected_version,
        reject_reason=reason,
        moderated_by=actor,
        moderated_at=timezone.now(),
    )


def answer(
    question_id: int,
    text: str,
    *,
    actor=None,
    expected_version: int | None = None,
):
    text = (text or "").strip()
    if not text:
        msg = "Answer text cannot be blank."
        raise ValidationError(msg, field="answer")
    return _transition(
        question_id,
        "answer",
        expected_version=expected_version,
        answer=text,
        answered_by=actor,
        answered_at=timezone.now(),
    )


def hide(question_id: int, *, actor=None, expected_version: int | None = None):
    return _transition(
        question_id,
        "hide",
        expected_version=expected_version,
        is_broadcasting=False,
        is_displayed=False,
        moderated_by=actor,
        moderated_at=timezone.now(),
    )


def unhide(question_id: int, *, actor=None, expected_version: int | None = None):
    return _transition(
        question_id,
        "unhide",
        expected_version=expected_version,
        moderated_by=actor,
        moderated_at=timezone.now(),
    )


def pin(question_id: int, *, actor=None, expected_version: int | None = None):
    return set_flag(
        question_id,
        "is_pinned",
        True,  # noqa: FBT003
        actor=actor,
        expected_version=expected_version,
    )


def unpin(question_id: int, *, actor=None, expected_version: int | None = None):
    return set_flag(
        question_id,
        "is_pinned",
        False,  # noqa: FBT003
        actor=actor,
        expected_version=expected_version,
    )


def toggle_display(
    question_id: int,
    *,
    actor=None,
    expected_version: int | None = None,
) -> Question:
    with locked_question(question_id, expected_version=expected_version) as question:
        require_status(question, "toggle_display", STATUS_GATED["toggle_display"])
        question.is_displayed = not question.is_displayed
        save_fields(question, "is_displayed")
    logger.info("Question %s is_displayed=%s", question.pk, question.is_displayed)
    return question


def assign_presenter(
    question_id: int,
    presenter_id: int | None,
    *,
    actor=None,
    expected_version: int | None = None,
) -> Question:
    with locked_question(question_id, expected_version=expected_version) as question:
        presenter = None
        if presenter_id is not None:
            presenter = SessionPresenter.objects.filter(
                pk=presenter_id,
                session_id=question.session_id,
                status=SessionPresenter.Status.CONFIRMED,
            ).first()
            if presenter is None:
                msg = "Presenter is not a confirmed presenter of this session."
                raise ValidationError(msg, field="presenter")
        question.presenter = presenter
        save_fields(question, "presenter")
    logger.info("Question %s presenter=%s", question.pk, presenter_id)
    return question


def delete_question(question_id: int, *, actor=None) -> Question:
    """Hard-delete a question from any status.

    Returns the removed instance (its ``pk`` is restored for the caller's
    bookkeeping).
    """

    with locked_question(question_id) as question:
        pk = question.pk
        question.delete()
    question.pk = pk
    logger.info("Question %s deleted", pk)
    return question
