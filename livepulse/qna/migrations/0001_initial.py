import django.db.models.deletion
from django.conf import settings
from django.db import migrations
from django.db import models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("live", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Question",
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
                ("content", models.TextField()),
                (
                    "author_name",
                    models.CharField(blank=True, max_length=100, null=True),
                ),
                ("is_anonymous", models.BooleanField(default=False)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                            ("answered", "Answered"),
                            ("hidden", "Hidden"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("is_pinned", models.BooleanField(default=False)),
                ("is_highlighted", models.BooleanField(default=False)),
                (
                    "is_broadcasting",
                    models.BooleanField(
                        default=False,
                        help_text="Projected on the public broadcast screen",
                    ),
                ),
                (
                    "is_displayed",
                    models.BooleanField(
                        default=False,
                        help_text="Listed on the presenter screen",
                    ),
                ),
                ("display_order", models.IntegerField(default=0)),
                ("likes_count", models.PositiveIntegerField(default=0)),
                ("answer", models.TextField(blank=True, null=True)),
                ("reject_reason", models.TextField(blank=True, null=True)),
                ("created_by_manager", models.BooleanField(default=False)),
                ("moderated_at", models.DateTimeField(blank=True, null=True)),
                ("answered_at", models.DateTimeField(blank=True, null=True)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Bumped on every write; used for stale-write checks",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "answered_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "moderated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "presenter",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="questions",
                        to="live.sessionpresenter",
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="questions",
                        to="live.livesession",
                    ),
                ),
            ],
            options={
                "ordering": [
                    "display_order",
                    "-is_pinned",
                    "-is_highlighted",
                    "-created_at",
                ],
                "indexes": [
                    models.Index(
                        fields=["session", "display_order"],
                        name="qna_session_order_idx",
                    ),
                    models.Index(
                        fields=["session", "status"],
                        name="qna_session_status_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_broadcasting", True)),
                        fields=("session",),
                        name="qna_one_broadcast_per_session",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="QuestionLike",
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
                ("device_id", models.CharField(max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "question",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="likes",
                        to="qna.question",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("question", "device_id"),
                        name="qna_one_like_per_device",
                    ),
                ],
            },
        ),
    ]
