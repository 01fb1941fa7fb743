from django.conf import settings
from django.db import models


class AuditLogQuerySet(models.QuerySet):
    def for_session(self, session_id: int):
        return self.filter(session_id=session_id)

    def for_question(self, question_id: int):
        return self.filter(model_name="Question", record_id=question_id)


class AuditLog(models.Model):
    """One moderator action; ``before``/``after`` hold the touched row's state."""

    action = models.CharField(max_length=100)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    message = models.TextField(blank=True)
    model_name = models.CharField(max_length=150, blank=True)
    record_id = models.BigIntegerField(null=True, blank=True)
    # Plain id: entries outlive the session they describe.
    session_id = models.BigIntegerField(null=True, blank=True)
    before = models.JSONField(null=True, blank=True)
    after = models.JSONField(null=True, blank=True)
    ip_address = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["session_id", "-created_at"], name="audit_session_recent_idx"
            ),
            models.Index(fields=["model_name", "record_id"], name="audit_record_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        who = self.actor_id or "system"
        target = f"{self.model_name}#{self.record_id}" if self.model_name else "-"
        return f"[{self.created_at}] {who}: {self.action} {target}"
