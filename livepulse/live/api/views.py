"""Moderator endpoints scoped to one live session."""

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import extend_schema
from rest_framework import permissions
from rest_framework import status
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from livepulse.audit.api.serializers import AuditLogSerializer
from livepulse.audit.models import AuditLog
from livepulse.audit.utils import log_session_action
from livepulse.live import services as live_services
from livepulse.live.api.serializers import AddPresenterSerializer
from livepulse.live.api.serializers import BroadcastSettingsSerializer
from livepulse.live.api.serializers import SessionPresenterSerializer
from livepulse.live.models import LiveSession
from livepulse.qna import services as qna_services
from livepulse.qna.api.serializers import QuestionSerializer
from livepulse.qna.api.serializers import ReorderSerializer


class LiveSessionViewSet(viewsets.GenericViewSet):
    queryset = LiveSession.objects.all()
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = SessionPresenterSerializer
    lookup_value_regex = r"\d+"

    @extend_schema(request=ReorderSerializer, responses=QuestionSerializer(many=True))
    @action(detail=True, methods=["post"])
    def reorder(self, request, pk=None):
        """Persist a drag-and-drop order; all rows change or none do."""

        session = self.get_object()
        ser = ReorderSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        ordered_ids = ser.validated_data["ordered_ids"]
        rows = qna_services.reorder(session.pk, ordered_ids, actor=request.user)
        log_session_action(
            request,
            "questions_reordered",
            session,
            message=f"{len(ordered_ids)} questions",
            after={"ordered_ids": ordered_ids},
        )
        return Response(QuestionSerializer(rows, many=True).data)

    @extend_schema(
        methods=["GET"],
        responses=BroadcastSettingsSerializer,
    )
    @extend_schema(
        methods=["PUT"],
        request=BroadcastSettingsSerializer,
        responses=BroadcastSettingsSerializer,
    )
    @action(detail=True, methods=["get", "put"], url_path="broadcast-settings")
    def broadcast_settings(self, request, pk=None):
        session = self.get_object()
        if request.method.upper() == "PUT":
            ser = BroadcastSettingsSerializer(data=request.data)
            ser.is_valid(raise_exception=True)
            before = session.broadcast_settings
            session = live_services.update_broadcast_settings(
                session.pk, ser.validated_data["settings"]
            )
            log_session_action(
                request,
                "broadcast_settings_updated",
                session,
                before=before,
                after=session.broadcast_settings,
            )
        return Response({"settings": session.broadcast_settings})

    @extend_schema(
        methods=["GET"],
        responses=SessionPresenterSerializer(many=True),
    )
    @extend_schema(
        methods=["POST"],
        request=AddPresenterSerializer,
        responses=SessionPresenterSerializer,
    )
    @action(detail=True, methods=["get", "post"])
    def presenters(self, request, pk=None):
        """Confirmed presenters available for assignment, or add one."""

        session = self.get_object()
        if request.method.upper() == "POST":
            ser = AddPresenterSerializer(data=request.data)
            ser.is_valid(raise_exception=True)
            data = dict(ser.validated_data)
            presenter_type = data.pop("presenter_type")
            presenter = live_services.add_presenter(session.pk, presenter_type, data)
            log_session_action(
                request,
                "presenter_added",
                session,
                message=f"{presenter.presenter_type}: {presenter.display_name}",
                after={"presenter_id": presenter.pk},
            )
            return Response(
                SessionPresenterSerializer(presenter).data,
                status=status.HTTP_201_CREATED,
            )
        presenters = live_services.confirmed_presenters(session.pk)
        return Response(SessionPresenterSerializer(presenters, many=True).data)

    @extend_schema(
        parameters=[OpenApiParameter("limit", OpenApiTypes.INT, required=False)],
        responses=AuditLogSerializer(many=True),
    )
    @action(detail=True, methods=["get"])
    def activity(self, request, pk=None):
        """Most recent moderator actions in the session, newest first."""

        session = self.get_object()
        try:
            limit = int(request.query_params.get("limit", "20"))
        except (TypeError, ValueError):
            limit = 20
        limit = max(1, min(limit, 100))

        rows = list(
            AuditLog.objects.for_session(session.pk).select_related("actor")[:limit]
        )
        data = AuditLogSerializer(rows, many=True).data
        return Response({"results": data, "limit": limit})
