from django.conf import settings
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from livepulse.qna.models import Question


class QuestionSerializer(serializers.ModelSerializer):
    presenter_name = serializers.CharField(
        source="presenter.display_name", read_only=True, default=None
    )

    class Meta:
        model = Question
        fields = [
            "id",
            "session",
            "content",
            "author_name",
            "is_anonymous",
            "status",
            "is_pinned",
            "is_highlighted",
            "is_broadcasting",
            "is_displayed",
            "presenter",
            "presenter_name",
            "display_order",
            "likes_count",
            "answer",
            "reject_reason",
            "created_by_manager",
            "moderated_by",
            "moderated_at",
            "answered_by",
            "answered_at",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AudienceQuestionSerializer(serializers.ModelSerializer):
    presenter_name = serializers.CharField(
        source="presenter.display_name", read_only=True, default=None
    )

    class Meta:
        model = Question
        fields = [
            "id",
            "content",
            "author_name",
            "is_anonymous",
            "status",
            "is_pinned",
            "is_highlighted",
            "is_broadcasting",
            "presenter_name",
            "likes_count",
            "answer",
            "answered_at",
            "created_at",
        ]
        read_only_fields = fields


class PresenterQuestionSerializer(AudienceQuestionSerializer):
    class Meta(AudienceQuestionSerializer.Meta):
        fields = [
            *AudienceQuestionSerializer.Meta.fields,
            "is_displayed",
            "display_order",
        ]
        read_only_fields = fields


class VersionedActionSerializer(serializers.Serializer):
    expected_version = serializers.IntegerField(
        required=False, allow_null=True, min_value=1
    )


class RejectSerializer(VersionedActionSerializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AnswerSerializer(VersionedActionSerializer):
    answer = serializers.CharField(allow_blank=True)


class AssignPresenterSerializer(VersionedActionSerializer):
    presenter = serializers.IntegerField(allow_null=True)


class _SubmissionSerializer(serializers.Serializer):
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)
    author_name = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=100
    )
    is_anonymous = serializers.BooleanField(required=False, default=False)

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError(_("Question content cannot be blank."))
        limit = settings.LIVEPULSE_QUESTION_MAX_LENGTH
        if len(value) > limit:
            msg = _("Question content cannot exceed %(limit)s characters.") % {
                "limit": limit
            }
            raise serializers.ValidationError(msg)
        return value


class SubmitQuestionSerializer(_SubmissionSerializer):
    pass


class ManualQuestionSerializer(_SubmissionSerializer):
    session = serializers.IntegerField()
    presenter = serializers.IntegerField(required=False, allow_null=True)
    auto_approve = serializers.BooleanField(required=False, default=True)


class ReorderSerializer(serializers.Serializer):
    ordered_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), allow_empty=True
    )


class LikeSerializer(serializers.Serializer):
    device_id = serializers.CharField(max_length=64)


class LikeResultSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    liked = serializers.BooleanField()
    likes_count = serializers.IntegerField()


class BroadcastToggleSerializer(serializers.Serializer):
    question = QuestionSerializer()
    is_broadcasting = serializers.BooleanField()
    cleared_ids = serializers.ListField(child=serializers.IntegerField())
