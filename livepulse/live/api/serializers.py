from django.contrib.auth import get_user_model
from rest_framework import serializers

from livepulse.live.models import SessionPresenter


class SessionPresenterSerializer(serializers.ModelSerializer):
    class Meta:
        model = SessionPresenter
        fields = [
            "id",
            "session",
            "presenter_type",
            "status",
            "user",
            "partner_ref",
            "display_name",
            "display_title",
            "manual_bio",
            "manual_image",
            "display_order",
            "created_at",
        ]
        read_only_fields = fields


class AddPresenterSerializer(serializers.Serializer):
    presenter_type = serializers.ChoiceField(
        choices=SessionPresenter.PresenterType.choices,
        default=SessionPresenter.PresenterType.MANUAL,
    )
    name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    title = serializers.CharField(required=False, allow_blank=True, max_length=150)
    bio = serializers.CharField(required=False, allow_blank=True)
    image = serializers.CharField(required=False, allow_blank=True, max_length=500)
    user = serializers.PrimaryKeyRelatedField(
        queryset=get_user_model().objects.all(), required=False, allow_null=True
    )
    partner_ref = serializers.CharField(
        required=False, allow_blank=True, max_length=64
    )
    status = serializers.ChoiceField(
        choices=SessionPresenter.Status.choices, required=False
    )


class BroadcastSettingsSerializer(serializers.Serializer):
    settings = serializers.JSONField()
