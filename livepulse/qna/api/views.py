"""Moderator console and audience endpoints for live Q&A."""

import logging

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import extend_schema
from rest_framework import mixins
from rest_framework import permissions
from rest_framework import status
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from livepulse.audit.utils import log_question_action
from livepulse.audit.utils import question_state
from livepulse.live.models import LiveSession
from livepulse.qna import services
from livepulse.qna.api.filters import QuestionFilter
from livepulse.qna.api.serializers import AnswerSerializer
from livepulse.qna.api.serializers import AssignPresenterSerializer
from livepulse.qna.api.serializers import AudienceQuestionSerializer
from livepulse.qna.api.serializers import BroadcastToggleSerializer
from livepulse.qna.api.serializers import LikeResultSerializer
from livepulse.qna.api.serializers import LikeSerializer
from livepulse.qna.api.serializers import ManualQuestionSerializer
from livepulse.qna.api.serializers import PresenterQuestionSerializer
from livepulse.qna.api.serializers import QuestionSerializer
from livepulse.qna.api.serializers import RejectSerializer
from livepulse.qna.api.serializers import SubmitQuestionSerializer
from livepulse.qna.api.serializers import VersionedActionSerializer
from livepulse.qna.exceptions import NotFoundError
from livepulse.qna.models import Question

logger = logging.getLogger(__name__)

AUDIENCE_SORTS = ("popular", "newest", "oldest")


class QuestionViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Moderator console.

    Every write goes through ``livepulse.qna.services``; bodies may carry
    ``expected_version`` to turn a stale write into a 409 instead of an
    overwrite.
    """

    serializer_class = QuestionSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_class = QuestionFilter
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        return Question.objects.select_related("presenter").console_order()

    def get_object(self):
        # Detail routes are addressed by id alone; the session filter is for lists.
        question = self.get_queryset().filter(pk=self.kwargs["pk"]).first()
        if question is None:
            msg = f"Question {self.kwargs['pk']} does not exist."
            raise NotFoundError(msg)
        return question

    def _before(self, pk):
        question = Question.objects.filter(pk=pk).first()
        return question_state(question)

    def _moderate(  # noqa: PLR0913
        self,
        request,
        pk,
        action_name,
        operation,
        serializer_class=VersionedActionSerializer,
        args=(),
    ):
        ser = serializer_class(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        before = self._before(pk)
        question = operation(
            int(pk),
            *[data.get(name) for name in args],
            actor=request.user,
            expected_version=data.get("expected_version"),
        )
        log_question_action(request, action_name, question, before=before)
        return Response(QuestionSerializer(question).data)

    @extend_schema(request=ManualQuestionSerializer, responses=QuestionSerializer)
    def create(self, request, *args, **kwargs):
        """Add a question on behalf of the room (approved unless told otherwise)."""

        ser = ManualQuestionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        question = services.add_manual_question(
            data["session"],
            data["content"],
            actor=request.user,
            author_name=data.get("author_name"),
            is_anonymous=data.get("is_anonymous", False),
            presenter_id=data.get("presenter"),
            auto_approve=data.get("auto_approve", True),
        )
        log_question_action(request, "question_added", question)
        return Response(
            QuestionSerializer(question).data, status=status.HTTP_201_CREATED
        )

    def destroy(self, request, *args, **kwargs):
        pk = kwargs["pk"]
        before = self._before(pk)
        question = services.delete_question(int(pk), actor=request.user)
        log_question_action(
            request, "question_deleted", question, before=before, deleted=True
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=VersionedActionSerializer, responses=QuestionSerializer)
    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        return self._moderate(request, pk, "question_approved", services.approve)

    @extend_schema(request=RejectSerializer, responses=QuestionSerializer)
    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        return self._moderate(
            request,
            pk,
            "question_rejected",
            services.reject,
            serializer_class=RejectSerializer,
            args=("reason",),
        )

    @extend_schema(request=AnswerSerializer, responses=QuestionSerializer)
    @action(detail=True, methods=["post"])
    def answer(self, request, pk=None):
        return self._moderate(
            request,
            pk,
            "question_answered",
            services.answer,
            serializer_class=AnswerSerializer,
            args=("answer",),
        )

    @extend_schema(request=VersionedActionSerializer, responses=QuestionSerializer)
    @action(detail=True, methods=["post"])
    def hide(self, request, pk=None):
        return self._moderate(request, pk, "question_hidden", services.hide)

    @extend_schema(request=VersionedActionSerializer, responses=QuestionSerializer)
    @action(detail=True, methods=["post"])
    def unhide(self, request, pk=None):
        return self._moderate(request, pk, "question_unhidden", services.unhide)

    @extend_schema(request=VersionedActionSerializer, responses=QuestionSerializer)
    @action(detail=True, methods=["post"])
    def pin(self, request, pk=None):
        return self._moderate(request, pk, "question_pinned", services.pin)

    @extend_schema(request=VersionedActionSerializer, responses=QuestionSerializer)
    @action(detail=True, methods=["post"])
    def unpin(self, request, pk=None):
        return self._moderate(request, pk, "question_unpinned", services.unpin)

    @extend_schema(request=VersionedActionSerializer, responses=QuestionSerializer)
    @action(detail=True, methods=["post"])
    def highlight(self, request, pk=None):
        return self._moderate(request, pk, "question_highlighted", services.highlight)

    @extend_schema(request=VersionedActionSerializer, responses=QuestionSerializer)
    @action(detail=True, methods=["post"])
    def unhighlight(self, request, pk=None):
        return self._moderate(
            request, pk, "question_unhighlighted", services.unhighlight
        )

    @extend_schema(request=VersionedActionSerializer, responses=QuestionSerializer)
    @action(detail=True, methods=["post"], url_path="toggle-display")
    def toggle_display(self, request, pk=None):
        return self._moderate(
            request, pk, "question_display_toggled", services.toggle_display
        )

    @extend_schema(request=AssignPresenterSerializer, responses=QuestionSerializer)
    @action(detail=True, methods=["post"], url_path="assign-presenter")
    def assign_presenter(self, request, pk=None):
        return self._moderate(
            request,
            pk,
            "question_presenter_assigned",
            services.assign_presenter,
            serializer_class=AssignPresenterSerializer,
            args=("presenter",),
        )

    @extend_schema(
        request=VersionedActionSerializer, responses=BroadcastToggleSerializer
    )
    @action(detail=True, methods=["post"], url_path="toggle-broadcast")
    def toggle_broadcast(self, request, pk=None):
        """Put the question on the broadcast screen, or take it off.

        Starting replaces whatever else the session was broadcasting in the
        same transaction.
        """

        ser = VersionedActionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        before = self._before(pk)
        result = services.toggle_broadcast(
            int(pk),
            actor=request.user,
            expected_version=ser.validated_data.get("expected_version"),
        )
        action_name = (
            "broadcast_started" if result.is_broadcasting else "broadcast_stopped"
        )
        message = (
            f"cleared={list(result.cleared_ids)}" if result.cleared_ids else ""
        )
        log_question_action(
            request, action_name, result.question, before=before, message=message
        )
        return Response(BroadcastToggleSerializer(result).data)


class AudienceSessionViewSet(viewsets.GenericViewSet):
    """Anonymous audience view, presenter screen and broadcast screen.

    Sessions are addressed by join code.
    """

    queryset = LiveSession.objects.all()
    permission_classes = [permissions.AllowAny]
    authentication_classes = []
    lookup_field = "code"
    serializer_class = AudienceQuestionSerializer

    @extend_schema(
        methods=["GET"],
        parameters=[
            OpenApiParameter(
                name="sort",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                enum=list(AUDIENCE_SORTS),
            )
        ],
        responses=AudienceQuestionSerializer(many=True),
    )
    @extend_schema(
        methods=["POST"],
        request=SubmitQuestionSerializer,
        responses=AudienceQuestionSerializer,
    )
    @action(detail=True, methods=["get", "post"])
    def questions(self, request, code=None):
        session = self.get_object()
        if request.method.upper() == "POST":
            ser = SubmitQuestionSerializer(data=request.data)
            ser.is_valid(raise_exception=True)
            data = ser.validated_data
            question = services.submit_question(
                session.pk,
                data["content"],
                author_name=data.get("author_name"),
                is_anonymous=data.get("is_anonymous", False),
            )
            return Response(
                AudienceQuestionSerializer(question).data,
                status=status.HTTP_201_CREATED,
            )

        sort = request.query_params.get("sort", "popular")
        if sort not in AUDIENCE_SORTS:
            msg = f"Expected one of {', '.join(AUDIENCE_SORTS)}."
            raise ValidationError({"sort": msg})
        queryset = (
            Question.objects.in_session(session.pk)
            .audience_visible()
            .select_related("presenter")
            .audience_order(sort)
        )
        return Response(AudienceQuestionSerializer(queryset, many=True).data)

    @extend_schema(responses=PresenterQuestionSerializer(many=True))
    @action(detail=True, methods=["get"])
    def presenter(self, request, code=None):
        """Questions marked for display, in the order the presenter takes them."""

        session = self.get_object()
        queryset = (
            Question.objects.in_session(session.pk)
            .on_presenter_screen()
            .select_related("presenter")
            .presenter_order()
        )
        return Response(PresenterQuestionSerializer(queryset, many=True).data)

    @extend_schema(responses=OpenApiTypes.OBJECT)
    @action(detail=True, methods=["get"])
    def broadcast(self, request, code=None):
        """Bootstrap for the broadcast screen: the on-air row and raw settings."""

        session = self.get_object()
        question = services.current_broadcast(session.pk)
        return Response(
            {
                "session": session.pk,
                "question": AudienceQuestionSerializer(question).data
                if question
                else None,
                "settings": session.broadcast_settings,
            }
        )


class AudienceQuestionViewSet(viewsets.GenericViewSet):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []
    serializer_class = AudienceQuestionSerializer
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        return Question.objects.audience_visible()

    @extend_schema(request=LikeSerializer, responses=LikeResultSerializer)
    @action(detail=True, methods=["post"])
    def like(self, request, pk=None):
        """Toggle this device's like; a second call removes it."""

        question = self.get_object()
        ser = LikeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = services.toggle_like(question.pk, ser.validated_data["device_id"])
        return Response(
            LikeResultSerializer(
                {
                    "id": result.question.pk,
                    "liked": result.liked,
                    "likes_count": result.question.likes_count,
                }
            ).data
        )
