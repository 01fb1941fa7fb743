from django.contrib import admin

from livepulse.qna.models import Question
from livepulse.qna.models import QuestionLike


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "session",
        "status",
        "display_order",
        "is_pinned",
        "is_highlighted",
        "is_broadcasting",
        "likes_count",
        "created_at",
    ]
    search_fields = ["content", "author_name", "answer"]
    list_filter = ["status", "is_broadcasting", "is_displayed", "created_by_manager"]
    # Broadcast and version are owned by the moderation services.
    readonly_fields = ["is_broadcasting", "likes_count", "version"]


@admin.register(QuestionLike)
class QuestionLikeAdmin(admin.ModelAdmin):
    list_display = ["id", "question", "device_id", "created_at"]
    search_fields = ["device_id"]
