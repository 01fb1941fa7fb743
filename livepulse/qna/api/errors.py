"""Map moderation errors onto DRF responses."""

from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from livepulse.qna.exceptions import ConflictError
from livepulse.qna.exceptions import ModerationError
from livepulse.qna.exceptions import NotFoundError
from livepulse.qna.exceptions import PersistenceError
from livepulse.qna.exceptions import StateError
from livepulse.qna.exceptions import ValidationError

STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    StateError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _error_body(exc: ModerationError) -> dict:
    body = {"detail": str(exc), "code": exc.code}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    elif isinstance(exc, StateError):
        body["status"] = exc.status
        body["allowed"] = list(exc.allowed)
    elif isinstance(exc, ConflictError):
        body["expected_version"] = exc.expected
        body["current_version"] = exc.actual
    return body


def moderation_exception_handler(exc, context):
    if isinstance(exc, ModerationError):
        code = next(
            (
                http_status
                for error_class, http_status in STATUS_BY_ERROR.items()
                if isinstance(exc, error_class)
            ),
            status.HTTP_400_BAD_REQUEST,
        )
        return Response(_error_body(exc), status=code)
    return exception_handler(exc, context)
