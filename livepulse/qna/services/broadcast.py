"""Broadcast singleton: at most one question per session on the public screen.

The projector screen runs unattended, so a double broadcast or a flicker
between two questions is visible to the whole room. ``toggle_broadcast`` is
therefore the only way to change ``is_broadcasting`` and it does clear and set
in one transaction, serialized per session by locking the session row. The
partial unique index ``qna_one_broadcast_per_session`` backs this up at the
database level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import DatabaseError
from django.db import transaction

from livepulse.live.models import LiveSession
from livepulse.qna.exceptions import NotFoundError
from livepulse.qna.exceptions import PersistenceError
from livepulse.qna.models import Question

from .common import PERSISTENCE_MESSAGE
from .common import check_version
from .common import get_question
from .common import require_status
from .common import save_fields
from .moderation import STATUS_GATED

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BroadcastToggle:
    question: Question
    is_broadcasting: bool
    cleared_ids: tuple[int, ...] = ()


def toggle_broadcast(
    question_id: int,
    *,
    actor=None,
    expected_version: int | None = None,
) -> BroadcastToggle:
    """Stop ``question_id`` if it is on air, otherwise put it on air exclusively.

    Stopping is allowed from any status; starting needs an approved or
    answered question. ``hide`` clears the flag on its own.
    """

    session_id = get_question(question_id).session_id
    try:
        with transaction.atomic():
            # Session row is the per-session mutex for the singleton.
            LiveSession.objects.select_for_update().filter(pk=session_id).first()
            question = get_locked(question_id)
            check_version(question, expected_version)

            if question.is_broadcasting:
                question.is_broadcasting = False
                save_fields(question, "is_broadcasting")
                result = BroadcastToggle(question=question, is_broadcasting=False)
            else:
                require_status(
                    question, "start_broadcast", STATUS_GATED["start_broadcast"]
                )
                on_air = list(
                    Question.objects.select_for_update()
                    .in_session(session_id)
                    .broadcasting()
                    .exclude(pk=question.pk)
                )
                # Clear before set, or the unique index rejects the new row.
                for other in on_air:
                    other.is_broadcasting = False
                    save_fields(other, "is_broadcasting")
                question.is_broadcasting = True
                save_fields(question, "is_broadcasting")
                result = BroadcastToggle(
                    question=question,
                    is_broadcasting=True,
                    cleared_ids=tuple(other.pk for other in on_air),
                )
    except DatabaseError as exc:
        logger.exception("Broadcast toggle for question %s failed", question_id)
        raise PersistenceError(PERSISTENCE_MESSAGE) from exc

    if result.is_broadcasting:
        logger.info(
            "Session %s broadcasting question %s (cleared %s)",
            session_id,
            question_id,
            list(result.cleared_ids),
        )
    else:
        logger.info(
            "Session %s broadcast of question %s stopped", session_id, question_id
        )
    return result


def get_locked(question_id: int) -> Question:
    question = Question.objects.select_for_update().filter(pk=question_id).first()
    if question is None:
        # Deleted between the session lookup and the lock.
        msg = f"Question {question_id} does not exist."
        raise NotFoundError(msg)
    return question


def current_broadcast(session_id: int) -> Question | None:
    return (
        Question.objects.in_session(session_id)
        .broadcasting()
        .select_related("presenter")
        .first()
    )
