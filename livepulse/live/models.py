from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class LiveSession(models.Model):
    """A scheduled live event that audiences join with a code.

    Session CRUD belongs to the partner console; this model only carries what
    the Q&A engine reads.
    """

    title = models.CharField(max_length=255)
    code = models.CharField(
        max_length=32, unique=True, help_text=_("Join code shown to the audience")
    )
    broadcast_settings = models.JSONField(
        default=dict,
        blank=True,
        help_text=_("Opaque broadcast screen styling, forwarded unmodified"),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.title} ({self.code})"


class SessionPresenter(models.Model):
    class PresenterType(models.TextChoices):
        MEMBER = "member", _("Team member")
        PARTNER = "partner", _("Invited partner")
        MANUAL = "manual", _("Manual entry")

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        DECLINED = "declined", _("Declined")

    session = models.ForeignKey(
        LiveSession, on_delete=models.CASCADE, related_name="presenters"
    )
    presenter_type = models.CharField(max_length=20, choices=PresenterType.choices)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="+",
        help_text=_("Team member presenting (member presenters only)"),
    )
    partner_ref = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text=_("External partner id (partner presenters only)"),
    )
    display_name = models.CharField(max_length=150)
    display_title = models.CharField(max_length=150, blank=True, default="")
    manual_bio = models.TextField(blank=True, default="")
    manual_image = models.CharField(max_length=500, blank=True, default="")
    display_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["display_order", "created_at"]

    def __str__(self):
        return f"{self.display_name} ({self.presenter_type})"

    @property
    def is_confirmed(self) -> bool:
        return self.status == self.Status.CONFIRMED
