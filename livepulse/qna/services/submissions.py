from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import DatabaseError
from django.db import transaction
from django.utils import timezone

from livepulse.live.models import LiveSession
from livepulse.live.models import SessionPresenter
from livepulse.qna.exceptions import NotFoundError
from livepulse.qna.exceptions import PersistenceError
from livepulse.qna.exceptions import ValidationError
from livepulse.qna.models import Question
from livepulse.qna.models import QuestionLike

from .common import PERSISTENCE_MESSAGE
from .common import clean_content
from .common import locked_question

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikeToggle:
    question: Question
    liked: bool


def _author(author_name: str | None, *, is_anonymous: bool) -> str | None:
    if is_anonymous:
        return None
    return (author_name or "").strip() or None


def _create_question(session_id: int, **fields) -> Question:
    try:
        with transaction.atomic():
            # Lock the session so concurrent inserts get distinct positions.
            session = LiveSession.objects.select_for_update().filter(pk=session_id).first()
            if session is None:
                msg = f"Session {session_id} does not exist."
                raise NotFoundError(msg)
            return Question.objects.create(
                session=session,
                display_order=Question.objects.next_display_order(session_id),
                **fields,
            )
    except DatabaseError as exc:
        logger.exception("Creating a question in session %s failed", session_id)
        raise PersistenceError(PERSISTENCE_MESSAGE) from exc


def submit_question(
    session_id: int,
    content: str,
    *,
    author_name: str | None = None,
    is_anonymous: bool = False,
) -> Question:
    """Audience submission; lands in ``pending`` until a moderator acts."""

    question = _create_question(
        session_id,
        content=clean_content(content),
        author_name=_author(author_name, is_anonymous=is_anonymous),
        is_anonymous=is_anonymous,
        status=Question.Status.PENDING,
    )
    logger.info("Question %s submitted to session %s", question.pk, session_id)
    return question


def add_manual_question(  # noqa: PLR0913
    session_id: int,
    content: str,
    *,
    actor=None,
    author_name: str | None = None,
    is_anonymous: bool = False,
    presenter_id: int | None = None,
    auto_approve: bool = True,
) -> Question:
    """Moderator-entered question, approved on entry unless told otherwise."""

    content = clean_content(content)
    presenter = None
    if presenter_id is not None:
        presenter = SessionPresenter.objects.filter(
            pk=presenter_id,
            session_id=session_id,
            status=SessionPresenter.Status.CONFIRMED,
        ).first()
        if presenter is None:
            msg = "Presenter is not a confirmed presenter of this session."
            raise ValidationError(msg, field="presenter")

    fields = {
        "content": content,
        "author_name": _author(author_name, is_anonymous=is_anonymous),
        "is_anonymous": is_anonymous,
        "presenter": presenter,
        "created_by_manager": True,
        "status": Question.Status.PENDING,
    }
    if auto_approve:
        fields.update(
            status=Question.Status.APPROVED,
            moderated_by=actor,
            moderated_at=timezone.now(),
        )
    question = _create_question(session_id, **fields)
    logger.info(
        "Question %s added by moderator to session %s (%s)",
        question.pk,
        session_id,
        question.status,
    )
    return question


def toggle_like(question_id: int, device_id: str) -> LikeToggle:
    """Like or un-like a question once per audience device."""

    device_id = (device_id or "").strip()
    if not device_id:
        msg = "A device id is required to like a question."
        raise ValidationError(msg, field="device_id")

    with locked_question(question_id) as question:
        removed, _ = QuestionLike.objects.filter(
            question=question, device_id=device_id
        ).delete()
        if removed:
            question.likes_count = max(0, question.likes_count - 1)
        else:
            QuestionLike.objects.create(question=question, device_id=device_id)
            question.likes_count += 1
        # Likes are audience traffic; leave ``version`` to moderator edits.
        question.save(update_fields=["likes_count", "updated_at"])
    return LikeToggle(question=question, liked=not removed)
