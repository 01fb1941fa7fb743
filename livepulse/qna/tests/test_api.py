from unittest import mock

import pytest
from django.contrib.auth import get_user_model
from django.db import DatabaseError
from rest_framework.test import APIClient

from livepulse.audit.models import AuditLog
from livepulse.live.models import LiveSession
from livepulse.qna import services
from livepulse.qna.models import Question

User = get_user_model()
TEST_PASSWORD = "password"  # noqa: S105


@pytest.mark.django_db
class TestModeratorQuestionAPI:
    def setup_method(self):
        self.client = APIClient()
        self.moderator = User.objects.create_user(
            username="mod", email="mod@example.com", password=TEST_PASSWORD
        )
        self.session = LiveSession.objects.create(title="Keynote", code="KEYAPI")
        self.pending = Question.objects.create(
            session=self.session, content="Pending?", display_order=0
        )
        self.approved = Question.objects.create(
            session=self.session,
            content="Approved?",
            status=Question.Status.APPROVED,
            display_order=1,
        )
        self.client.force_authenticate(user=self.moderator)

    def url(self, question, action=""):
        base = f"/api/v1/questions/{question.pk}/"
        return f"{base}{action}/" if action else base

    def test_anonymous_is_rejected(self):
        self.client.force_authenticate(user=None)
        res = self.client.get(f"/api/v1/questions/?session={self.session.pk}")
        assert res.status_code in {401, 403}

    def test_list_in_console_order(self):
        res = self.client.get(f"/api/v1/questions/?session={self.session.pk}")
        assert res.status_code == 200
        assert [row["id"] for row in res.data] == [self.pending.pk, self.approved.pk]

    def test_list_requires_session(self):
        res = self.client.get("/api/v1/questions/")
        assert res.status_code == 400

    def test_list_filters_by_status(self):
        res = self.client.get(
            f"/api/v1/questions/?session={self.session.pk}&status=approved"
        )
        assert res.status_code == 200
        assert [row["id"] for row in res.data] == [self.approved.pk]

    def test_approve_records_audit(self):
        res = self.client.post(self.url(self.pending, "approve"))
        assert res.status_code == 200
        assert res.data["status"] == "approved"
        assert res.data["moderated_by"] == self.moderator.pk
        log = AuditLog.objects.get(action="question_approved")
        assert log.actor == self.moderator
        assert log.record_id == self.pending.pk
        assert log.session_id == self.session.pk
        assert log.before["status"] == "pending"
        assert log.after["status"] == "approved"

    def test_illegal_transition_is_409(self):
        res = self.client.post(self.url(self.approved, "approve"))
        assert res.status_code == 409
        assert res.data["code"] == "invalid_state"
        assert res.data["status"] == "approved"

    def test_stale_version_is_409(self):
        res = self.client.post(
            self.url(self.approved, "pin"), {"expected_version": 99}, format="json"
        )
        assert res.status_code == 409
        assert res.data["code"] == "stale_write"
        assert res.data["current_version"] == self.approved.version

    def test_reject_with_reason(self):
        res = self.client.post(
            self.url(self.pending, "reject"), {"reason": "too vague"}, format="json"
        )
        assert res.status_code == 200
        assert res.data["reject_reason"] == "too vague"

    def test_blank_answer_is_400(self):
        res = self.client.post(
            self.url(self.approved, "answer"), {"answer": " "}, format="json"
        )
        assert res.status_code == 400
        assert res.data["field"] == "answer"

    def test_answer(self):
        res = self.client.post(
            self.url(self.approved, "answer"), {"answer": "Yes"}, format="json"
        )
        assert res.status_code == 200
        assert res.data["status"] == "answered"
        assert res.data["answer"] == "Yes"

    def test_unknown_question_is_404(self):
        res = self.client.post("/api/v1/questions/999999/approve/")
        assert res.status_code == 404

    def test_toggle_broadcast_reports_cleared(self):
        other = Question.objects.create(
            session=self.session, content="Other", status=Question.Status.ANSWERED
        )
        self.client.post(self.url(other, "toggle-broadcast"))
        res = self.client.post(self.url(self.approved, "toggle-broadcast"))
        assert res.status_code == 200
        assert res.data["is_broadcasting"] is True
        assert res.data["cleared_ids"] == [other.pk]
        assert AuditLog.objects.filter(action="broadcast_started").count() == 2  # noqa: PLR2004

    def test_toggle_display(self):
        res = self.client.post(self.url(self.approved, "toggle-display"))
        assert res.status_code == 200
        assert res.data["is_displayed"] is True

    def test_highlight_and_pin(self):
        assert self.client.post(self.url(self.approved, "highlight")).status_code == 200
        res = self.client.post(self.url(self.approved, "pin"))
        assert res.data["is_highlighted"] is True
        assert res.data["is_pinned"] is True

    def test_manual_question(self):
        res = self.client.post(
            "/api/v1/questions/",
            {"session": self.session.pk, "content": "From the floor"},
            format="json",
        )
        assert res.status_code == 201
        assert res.data["status"] == "approved"
        assert res.data["created_by_manager"] is True
        assert res.data["display_order"] == 2  # noqa: PLR2004

    def test_manual_question_blank_content(self):
        res = self.client.post(
            "/api/v1/questions/",
            {"session": self.session.pk, "content": "  "},
            format="json",
        )
        assert res.status_code == 400

    def test_delete(self):
        res = self.client.delete(self.url(self.pending))
        assert res.status_code == 204
        assert not Question.objects.filter(pk=self.pending.pk).exists()
        res = self.client.get(f"/api/v1/questions/?session={self.session.pk}")
        assert [row["id"] for row in res.data] == [self.approved.pk]

    def test_persistence_failure_is_503(self):
        with mock.patch.object(
            Question, "save", side_effect=DatabaseError("disk full")
        ):
            res = self.client.post(self.url(self.pending, "approve"))
        assert res.status_code == 503
        assert res.data["code"] == "persistence_failed"
        self.pending.refresh_from_db()
        assert self.pending.status == "pending"
        # The console keeps working after a failed action.
        assert self.client.post(self.url(self.pending, "approve")).status_code == 200

    def test_audit_failure_does_not_break_action(self):
        with mock.patch(
            "livepulse.audit.utils.log_action", side_effect=RuntimeError("audit")
        ):
            res = self.client.post(self.url(self.pending, "approve"))
        assert res.status_code == 200


@pytest.mark.django_db
class TestAudienceAPI:
    def setup_method(self):
        self.client = APIClient()
        self.session = LiveSession.objects.create(
            title="Open floor", code="OPEN", broadcast_settings={"fontSize": 120}
        )
        self.visible = Question.objects.create(
            session=self.session,
            content="Visible",
            status=Question.Status.APPROVED,
            likes_count=3,
        )
        self.pinned = Question.objects.create(
            session=self.session,
            content="Pinned",
            status=Question.Status.APPROVED,
            is_pinned=True,
        )
        Question.objects.create(session=self.session, content="Waiting")
        Question.objects.create(
            session=self.session, content="Gone", status=Question.Status.HIDDEN
        )

    def test_list_shows_only_visible_in_popular_order(self):
        res = self.client.get("/api/v1/public/sessions/OPEN/questions/")
        assert res.status_code == 200
        assert [row["id"] for row in res.data] == [self.pinned.pk, self.visible.pk]
        assert "reject_reason" not in res.data[0]

    def test_bad_sort_is_400(self):
        res = self.client.get("/api/v1/public/sessions/OPEN/questions/?sort=random")
        assert res.status_code == 400

    def test_unknown_code_is_404(self):
        res = self.client.get("/api/v1/public/sessions/NOPE/questions/")
        assert res.status_code == 404

    def test_submit(self):
        res = self.client.post(
            "/api/v1/public/sessions/OPEN/questions/",
            {"content": "New one?", "author_name": "Kim"},
            format="json",
        )
        assert res.status_code == 201
        assert res.data["status"] == "pending"
        assert Question.objects.filter(content="New one?", author_name="Kim").exists()

    def test_submit_blank(self):
        res = self.client.post(
            "/api/v1/public/sessions/OPEN/questions/", {"content": ""}, format="json"
        )
        assert res.status_code == 400

    def test_like_toggle(self):
        url = f"/api/v1/public/questions/{self.visible.pk}/like/"
        res = self.client.post(url, {"device_id": "abc"}, format="json")
        assert res.status_code == 200
        assert res.data == {"id": self.visible.pk, "liked": True, "likes_count": 4}
        res = self.client.post(url, {"device_id": "abc"}, format="json")
        assert res.data["liked"] is False
        assert res.data["likes_count"] == 3  # noqa: PLR2004

    def test_cannot_like_hidden_question(self):
        hidden = Question.objects.get(content="Gone")
        res = self.client.post(
            f"/api/v1/public/questions/{hidden.pk}/like/",
            {"device_id": "abc"},
            format="json",
        )
        assert res.status_code == 404

    def test_broadcast_bootstrap(self):
        res = self.client.get("/api/v1/public/sessions/OPEN/broadcast/")
        assert res.status_code == 200
        assert res.data["question"] is None
        assert res.data["settings"] == {"fontSize": 120}

        Question.objects.filter(pk=self.visible.pk).update(is_broadcasting=True)
        res = self.client.get("/api/v1/public/sessions/OPEN/broadcast/")
        assert res.data["question"]["id"] == self.visible.pk

    def test_hidden_question_leaves_broadcast_bootstrap(self):
        services.toggle_broadcast(self.visible.pk)
        services.hide(self.visible.pk)
        res = self.client.get("/api/v1/public/sessions/OPEN/broadcast/")
        assert res.status_code == 200
        assert res.data["question"] is None

    def test_presenter_screen_lists_displayed_in_running_order(self):
        later = Question.objects.create(
            session=self.session,
            content="Later",
            status=Question.Status.ANSWERED,
            display_order=5,
            is_displayed=True,
        )
        Question.objects.filter(pk=self.visible.pk).update(is_displayed=True)
        Question.objects.filter(content="Gone").update(is_displayed=True)

        res = self.client.get("/api/v1/public/sessions/OPEN/presenter/")
        assert res.status_code == 200
        assert [row["id"] for row in res.data] == [self.visible.pk, later.pk]
        assert res.data[0]["is_displayed"] is True
        assert "display_order" in res.data[0]

    def test_presenter_screen_unknown_code_is_404(self):
        res = self.client.get("/api/v1/public/sessions/NOPE/presenter/")
        assert res.status_code == 404
