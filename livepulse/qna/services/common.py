"""Write helpers shared by the moderation services."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import DatabaseError
from django.db import transaction

from livepulse.qna.exceptions import ConflictError
from livepulse.qna.exceptions import NotFoundError
from livepulse.qna.exceptions import PersistenceError
from livepulse.qna.exceptions import StateError
from livepulse.qna.exceptions import ValidationError
from livepulse.qna.models import Question

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

PERSISTENCE_MESSAGE = "Could not save the change. Refresh the list and try again."


def get_question(question_id: int) -> Question:
    question = Question.objects.filter(pk=question_id).first()
    if question is None:
        msg = f"Question {question_id} does not exist."
        raise NotFoundError(msg)
    return question


def check_version(question: Question, expected_version: int | None) -> None:
    if expected_version is None or question.version == expected_version:
        return
    logger.warning(
        "Stale write on question %s: expected v%s, found v%s",
        question.pk,
        expected_version,
        question.version,
    )
    raise ConflictError(question.pk, expected_version, question.version)


def require_status(question: Question, operation: str, allowed: Iterable[str]) -> None:
    allowed = frozenset(allowed)
    if question.status in allowed:
        return
    logger.warning(
        "Rejected %s on question %s in status %s",
        operation,
        question.pk,
        question.status,
    )
    raise StateError(operation, question.status, allowed)


@contextmanager
def locked_question(
    question_id: int,
    *,
    expected_version: int | None = None,
) -> Iterator[Question]:
    """Yield the row locked for update inside its own transaction.

    Database failures anywhere in the block surface as ``PersistenceError``;
    the transaction is rolled back so the row keeps its last committed state.
    """

    try:
        with transaction.atomic():
            question = (
                Question.objects.select_for_update().filter(pk=question_id).first()
            )
            if question is None:
                msg = f"Question {question_id} does not exist."
                raise NotFoundError(msg)
            check_version(question, expected_version)
            yield question
    except DatabaseError as exc:
        logger.exception("Write to question %s failed", question_id)
        raise PersistenceError(PERSISTENCE_MESSAGE) from exc


def save_fields(question: Question, *fields: str) -> None:
    question.version += 1
    question.save(update_fields=[*fields, "version", "updated_at"])


def set_flag(
    question_id: int,
    field: str,
    value: bool,  # noqa: FBT001
    *,
    actor=None,
    expected_version: int | None = None,
) -> Question:
    with locked_question(question_id, expected_version=expected_version) as question:
        if getattr(question, field) == value:
            return question
        setattr(question, field, value)
        save_fields(question, field)
    logger.info(
        "Question %s %s=%s by user %s",
        question.pk,
        field,
        value,
        getattr(actor, "pk", None),
    )
    return question


def clean_content(content: str | None) -> str:
    text = (content or "").strip()
    if not text:
        msg = "Question content cannot be blank."
        raise ValidationError(msg, field="content")
    limit = settings.LIVEPULSE_QUESTION_MAX_LENGTH
    if len(text) > limit:
        msg = f"Question content cannot exceed {limit} characters."
        raise ValidationError(msg, field="content")
    return text
