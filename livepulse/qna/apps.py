from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class QnaConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "livepulse.qna"
    verbose_name = _("Live Q&A")

    def ready(self):
        import livepulse.qna.signals  # noqa: F401, PLC0415
