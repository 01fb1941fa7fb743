from django.db.models.signals import post_delete
from django.db.models.signals import post_save
from django.db.models.signals import pre_save
from django.db.transaction import on_commit
from django.dispatch import receiver

from livepulse.realtime.events.questions import build_question_payload
from livepulse.realtime.events.questions import publish_question_change

from .models import Question


@receiver(pre_save, sender=Question)
def store_old_row(sender, instance, **kwargs):
    orig = None
    if instance.pk:
        orig = (
            Question.objects.select_related("presenter")
            .filter(pk=instance.pk)
            .first()
        )
    instance._old_row = build_question_payload(orig) if orig else None  # noqa: SLF001


@receiver(post_save, sender=Question)
def publish_question_saved(sender, instance, created, **kwargs):
    old = None if created else getattr(instance, "_old_row", None)
    new = build_question_payload(instance)
    session_id = instance.session_id
    # Subscribers only ever see committed rows.
    on_commit(lambda: publish_question_change(session_id, old, new), robust=True)


@receiver(post_delete, sender=Question)
def publish_question_deleted(sender, instance, **kwargs):
    old = build_question_payload(instance)
    session_id = instance.session_id
    on_commit(lambda: publish_question_change(session_id, old, None), robust=True)
