from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

from django.db import DatabaseError
from django.db import transaction

from livepulse.qna.exceptions import NotFoundError
from livepulse.qna.exceptions import PersistenceError
from livepulse.qna.exceptions import ValidationError
from livepulse.qna.models import Question

from .common import PERSISTENCE_MESSAGE
from .common import check_version
from .common import get_question
from .common import save_fields
from .common import set_flag

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


def reorder(
    session_id: int,
    ordered_ids: Sequence[int],
    *,
    actor=None,
) -> list[Question]:
    """Set ``display_order`` to the list index of every id, all or nothing.

    Ids must be unique and belong to ``session_id``; questions left out of the
    list keep their current order.
    """

    ids = list(ordered_ids)
    if len(set(ids)) != len(ids):
        msg = "Each question may appear only once in the new order."
        raise ValidationError(msg, field="ordered_ids")
    if not ids:
        return []

    try:
        with transaction.atomic():
            rows = {
                q.pk: q
                for q in Question.objects.select_for_update()
                .in_session(session_id)
                .filter(pk__in=ids)
            }
            missing = [pk for pk in ids if pk not in rows]
            if missing:
                msg = f"Questions {missing} do not belong to session {session_id}."
                raise ValidationError(msg, field="ordered_ids")
            for index, pk in enumerate(ids):
                question = rows[pk]
                if question.display_order == index:
                    continue
                question.display_order = index
                save_fields(question, "display_order")
    except DatabaseError as exc:
        logger.exception("Reorder of session %s failed", session_id)
        raise PersistenceError(PERSISTENCE_MESSAGE) from exc

    logger.info("Session %s reordered (%d questions)", session_id, len(ids))
    return [rows[pk] for pk in ids]


def highlight(
    question_id: int,
    *,
    actor=None,
    expected_version: int | None = None,
) -> Question:
    """Highlight one question, clearing the flag on the rest of its session.

    Clear and set are separate writes. Two moderators highlighting at the
    same moment may briefly leave zero or two highlighted rows; the next
    highlight settles it.
    """

    target = get_question(question_id)
    check_version(target, expected_version)
    others = (
        Question.objects.in_session(target.session_id)
        .filter(is_highlighted=True)
        .exclude(pk=target.pk)
        .values_list("pk", flat=True)
    )
    for other_id in list(others):
        # Rows deleted since the query have nothing left to clear.
        with contextlib.suppress(NotFoundError):
            set_flag(other_id, "is_highlighted", False)  # noqa: FBT003
    return set_flag(
        question_id,
        "is_highlighted",
        True,  # noqa: FBT003
        actor=actor,
        expected_version=expected_version,
    )


def unhighlight(
    question_id: int,
    *,
    actor=None,
    expected_version: int | None = None,
) -> Question:
    return set_flag(
        question_id,
        "is_highlighted",
        False,  # noqa: FBT003
        actor=actor,
        expected_version=expected_version,
    )
