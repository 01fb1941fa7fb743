from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model

from .models import AuditLog

if TYPE_CHECKING:  # import for type checking only
    from livepulse.live.models import LiveSession
    from livepulse.qna.models import Question

logger = logging.getLogger(__name__)

# Question columns a moderator action can change; snapshotted before and after.
QUESTION_STATE_FIELDS = (
    "status",
    "is_pinned",
    "is_highlighted",
    "is_broadcasting",
    "is_displayed",
    "presenter_id",
    "display_order",
)


def log_action(  # noqa: PLR0913
    action: str,
    *,
    actor: object | None = None,
    message: str = "",
    model_name: str = "",
    record_id: int | None = None,
    session_id: int | None = None,
    before: dict | list | None = None,
    after: dict | list | None = None,
    ip_address: str = "",
) -> None:
    user_model = get_user_model()
    actor_user = actor if isinstance(actor, user_model) else None
    AuditLog.objects.create(
        action=action,
        actor=actor_user,
        message=message,
        model_name=model_name,
        record_id=record_id,
        session_id=session_id,
        before=before,
        after=after,
        ip_address=ip_address,
    )


def client_ip(request) -> str:
    return request.META.get("REMOTE_ADDR", "") or ""


def question_state(question: Question | None) -> dict | None:
    if question is None:
        return None
    return {field: getattr(question, field) for field in QUESTION_STATE_FIELDS}


def log_question_action(  # noqa: PLR0913
    request,
    action: str,
    question: Question,
    *,
    before: dict | None = None,
    message: str = "",
    deleted: bool = False,
) -> None:
    """Record a moderator action on ``question``.

    The action has already been committed when this runs, so a failing audit
    write is logged and never propagated to the caller.
    """
    try:
        log_action(
            action,
            actor=request.user,
            message=message,
            model_name="Question",
            record_id=question.pk,
            session_id=question.session_id,
            before=before,
            after=None if deleted else question_state(question),
            ip_address=client_ip(request),
        )
    except Exception:
        logger.exception("Audit entry %s for question %s failed", action, question.pk)


def log_session_action(
    request, action: str, session: LiveSession, **fields
) -> None:
    """Record a moderator action on a whole session (reorder, settings, presenters)."""
    try:
        log_action(
            action,
            actor=request.user,
            model_name="LiveSession",
            record_id=session.pk,
            session_id=session.pk,
            ip_address=client_ip(request),
            **fields,
        )
    except Exception:
        logger.exception("Audit entry %s for session %s failed", action, session.pk)
