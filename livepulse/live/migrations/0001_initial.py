import django.db.models.deletion
from django.conf import settings
from django.db import migrations
from django.db import models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="LiveSession",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("title", models.CharField(max_length=255)),
                (
                    "code",
                    models.CharField(
                        help_text="Join code shown to the audience",
                        max_length=32,
                        unique=True,
                    ),
                ),
                (
                    "broadcast_settings",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Opaque broadcast screen styling, forwarded unmodified",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="SessionPresenter",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "presenter_type",
                    models.CharField(
                        choices=[
                            ("member", "Team member"),
                            ("partner", "Invited partner"),
                            ("manual", "Manual entry"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("declined", "Declined"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "partner_ref",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="External partner id (partner presenters only)",
                        max_length=64,
                    ),
                ),
                ("display_name", models.CharField(max_length=150)),
                (
                    "display_title",
                    models.CharField(blank=True, default="", max_length=150),
                ),
                ("manual_bio", models.TextField(blank=True, default="")),
                (
                    "manual_image",
                    models.CharField(blank=True, default="", max_length=500),
                ),
                ("display_order", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="presenters",
                        to="live.livesession",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        help_text="Team member presenting (member presenters only)",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["display_order", "created_at"],
            },
        ),
    ]
