from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class QuestionQuerySet(models.QuerySet):
    def in_session(self, session_id: int):
        return self.filter(session_id=session_id)

    def console_order(self):
        # created_at breaks ties for legacy rows that never got an order.
        return self.order_by(
            "display_order",
            "-is_pinned",
            "-is_highlighted",
            "-created_at",
        )

    def audience_visible(self):
        return self.filter(status__in=settings.LIVEPULSE_AUDIENCE_VISIBLE_STATUSES)

    def audience_order(self, sort: str = "popular"):
        if sort == "newest":
            return self.order_by("-created_at")
        if sort == "oldest":
            return self.order_by("created_at")
        return self.order_by(
            "-is_pinned",
            "-is_highlighted",
            "-likes_count",
            "-created_at",
        )

    def broadcasting(self):
        return self.filter(is_broadcasting=True)

    def on_presenter_screen(self):
        return self.filter(
            status__in=SCREEN_STATUSES,
            is_displayed=True,
        )

    def presenter_order(self):
        return self.order_by("display_order", "-is_pinned", "created_at")

    def next_display_order(self, session_id: int) -> int:
        current = self.in_session(session_id).aggregate(
            top=models.Max("display_order")
        )["top"]
        return 0 if current is None else current + 1


class Question(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        APPROVED = "approved", _("Approved")
        REJECTED = "rejected", _("Rejected")
        ANSWERED = "answered", _("Answered")
        HIDDEN = "hidden", _("Hidden")

    session = models.ForeignKey(
        "live.LiveSession", on_delete=models.CASCADE, related_name="questions"
    )
    content = models.TextField()
    author_name = models.CharField(max_length=100, null=True, blank=True)  # noqa: DJ001
    is_anonymous = models.BooleanField(default=False)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )

    is_pinned = models.BooleanField(default=False)
    is_highlighted = models.BooleanField(default=False)
    is_broadcasting = models.BooleanField(
        default=False, help_text=_("Projected on the public broadcast screen")
    )
    is_displayed = models.BooleanField(
        default=False, help_text=_("Listed on the presenter screen")
    )
    presenter = models.ForeignKey(
        "live.SessionPresenter",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="questions",
    )
    display_order = models.IntegerField(default=0)
    likes_count = models.PositiveIntegerField(default=0)

    answer = models.TextField(null=True, blank=True)  # noqa: DJ001
    reject_reason = models.TextField(null=True, blank=True)  # noqa: DJ001
    created_by_manager = models.BooleanField(default=False)

    moderated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    moderated_at = models.DateTimeField(null=True, blank=True)
    answered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    answered_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(
        default=1, help_text=_("Bumped on every write; used for stale-write checks")
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = QuestionQuerySet.as_manager()

    class Meta:
        ordering = ["display_order", "-is_pinned", "-is_highlighted", "-created_at"]
        indexes = [
            models.Index(
                fields=["session", "display_order"], name="qna_session_order_idx"
            ),
            models.Index(fields=["session", "status"], name="qna_session_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["session"],
                condition=Q(is_broadcasting=True),
                name="qna_one_broadcast_per_session",
            ),
        ]

    def __str__(self):
        return f"Q{self.pk} [{self.status}] {self.content[:40]}"


# Statuses a question may be shown on the presenter or broadcast screen in.
SCREEN_STATUSES = frozenset({Question.Status.APPROVED, Question.Status.ANSWERED})


class QuestionLike(models.Model):
    question = models.ForeignKey(
        Question, on_delete=models.CASCADE, related_name="likes"
    )
    device_id = models.CharField(max_length=64)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["question", "device_id"], name="qna_one_like_per_device"
            ),
        ]

    def __str__(self):
        return f"{self.device_id} -> Q{self.question_id}"
