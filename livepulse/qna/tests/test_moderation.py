import pytest
from django.contrib.auth import get_user_model

from livepulse.live.models import LiveSession
from livepulse.live.models import SessionPresenter
from livepulse.qna import services
from livepulse.qna.exceptions import ConflictError
from livepulse.qna.exceptions import NotFoundError
from livepulse.qna.exceptions import StateError
from livepulse.qna.exceptions import ValidationError
from livepulse.qna.models import Question

User = get_user_model()
TEST_PASSWORD = "password"  # noqa: S105


@pytest.mark.django_db
class TestModerationTransitions:
    def setup_method(self):
        self.moderator = User.objects.create_user(
            username="mod", email="mod@example.com", password=TEST_PASSWORD
        )
        self.session = LiveSession.objects.create(title="Keynote", code="KEY1")

    def make(self, status=Question.Status.PENDING, **kwargs):
        return Question.objects.create(
            session=self.session, content="How?", status=status, **kwargs
        )

    def test_approve_sets_status_and_moderator(self):
        q = self.make()
        services.approve(q.pk, actor=self.moderator)
        q.refresh_from_db()
        assert q.status == Question.Status.APPROVED
        assert q.moderated_by == self.moderator
        assert q.moderated_at is not None

    def test_approve_non_pending_fails_without_change(self):
        q = self.make(status=Question.Status.APPROVED)
        version = q.version
        with pytest.raises(StateError) as excinfo:
            services.approve(q.pk, actor=self.moderator)
        assert excinfo.value.status == Question.Status.APPROVED
        q.refresh_from_db()
        assert q.status == Question.Status.APPROVED
        assert q.moderated_by is None
        assert q.version == version

    def test_reject_with_reason(self):
        q = self.make()
        services.reject(q.pk, "too vague", actor=self.moderator)
        q.refresh_from_db()
        assert q.status == Question.Status.REJECTED
        assert q.reject_reason == "too vague"
        assert q.moderated_by == self.moderator

    def test_reject_without_reason_stores_null(self):
        q = self.make()
        services.reject(q.pk)
        q.refresh_from_db()
        assert q.status == Question.Status.REJECTED
        assert q.reject_reason is None

    def test_reject_blank_reason_stores_null(self):
        q = self.make()
        services.reject(q.pk, "   ")
        q.refresh_from_db()
        assert q.reject_reason is None

    def test_answer_twice_last_write_wins(self):
        q = self.make(status=Question.Status.APPROVED)
        services.answer(q.pk, "A", actor=self.moderator)
        services.answer(q.pk, "B", actor=self.moderator)
        q.refresh_from_db()
        assert q.status == Question.Status.ANSWERED
        assert q.answer == "B"
        assert q.answered_by == self.moderator

    def test_answer_pending_is_state_error(self):
        q = self.make()
        with pytest.raises(StateError):
            services.answer(q.pk, "A")

    def test_blank_answer_is_validation_error(self):
        q = self.make(status=Question.Status.APPROVED)
        with pytest.raises(ValidationError) as excinfo:
            services.answer(q.pk, "  ")
        assert excinfo.value.field == "answer"
        q.refresh_from_db()
        assert q.status == Question.Status.APPROVED

    def test_hide_then_unhide_answered_returns_to_approved(self):
        q = self.make(status=Question.Status.APPROVED)
        services.answer(q.pk, "Yes")
        services.hide(q.pk)
        q.refresh_from_db()
        assert q.status == Question.Status.HIDDEN
        services.unhide(q.pk)
        q.refresh_from_db()
        assert q.status == Question.Status.APPROVED
        assert q.answer == "Yes"

    def test_hide_and_unhide_stamp_moderator(self):
        other = User.objects.create_user(
            username="mod2", email="mod2@example.com", password=TEST_PASSWORD
        )
        q = self.make(status=Question.Status.APPROVED)
        services.hide(q.pk, actor=self.moderator)
        q.refresh_from_db()
        assert q.moderated_by == self.moderator
        hidden_at = q.moderated_at
        assert hidden_at is not None

        services.unhide(q.pk, actor=other)
        q.refresh_from_db()
        assert q.moderated_by == other
        assert q.moderated_at >= hidden_at

    def test_hide_clears_screen_flags(self):
        q = self.make(
            status=Question.Status.ANSWERED, is_displayed=True, is_broadcasting=True
        )
        services.hide(q.pk, actor=self.moderator)
        q.refresh_from_db()
        assert q.is_displayed is False
        assert q.is_broadcasting is False

    def test_hide_pending_is_state_error(self):
        q = self.make()
        with pytest.raises(StateError):
            services.hide(q.pk)

    def test_unhide_requires_hidden(self):
        q = self.make(status=Question.Status.APPROVED)
        with pytest.raises(StateError):
            services.unhide(q.pk)

    def test_rejected_is_terminal(self):
        q = self.make(status=Question.Status.REJECTED)
        for operation in (services.approve, services.hide, services.unhide):
            with pytest.raises(StateError):
                operation(q.pk)

    def test_unknown_question_is_not_found(self):
        with pytest.raises(NotFoundError):
            services.approve(999999)

    def test_can_transition_table(self):
        assert services.can_transition("pending", "approve")
        assert not services.can_transition("approved", "approve")
        assert services.can_transition("answered", "answer")
        assert services.can_transition("hidden", "unhide")
        assert not services.can_transition("pending", "toggle_display")
        assert services.can_transition("rejected", "pin")


@pytest.mark.django_db
class TestFlagsAndVersions:
    def setup_method(self):
        self.session = LiveSession.objects.create(title="Panel", code="PAN1")
        self.q = Question.objects.create(
            session=self.session, content="Why?", status=Question.Status.APPROVED
        )

    def test_pin_and_unpin(self):
        services.pin(self.q.pk)
        self.q.refresh_from_db()
        assert self.q.is_pinned is True
        services.unpin(self.q.pk)
        self.q.refresh_from_db()
        assert self.q.is_pinned is False

    def test_pin_allowed_in_any_status(self):
        self.q.status = Question.Status.PENDING
        self.q.save()
        services.pin(self.q.pk)
        self.q.refresh_from_db()
        assert self.q.is_pinned is True

    def test_every_write_bumps_version(self):
        start = self.q.version
        services.pin(self.q.pk)
        services.hide(self.q.pk)
        self.q.refresh_from_db()
        assert self.q.version == start + 2

    def test_repeated_pin_does_not_bump_version(self):
        services.pin(self.q.pk)
        self.q.refresh_from_db()
        version = self.q.version
        services.pin(self.q.pk)
        self.q.refresh_from_db()
        assert self.q.version == version

    def test_stale_expected_version_is_conflict(self):
        stale = self.q.version
        services.answer(self.q.pk, "First")
        with pytest.raises(ConflictError) as excinfo:
            services.answer(self.q.pk, "Second", expected_version=stale)
        assert excinfo.value.expected == stale
        self.q.refresh_from_db()
        assert self.q.answer == "First"

    def test_matching_expected_version_writes(self):
        services.answer(self.q.pk, "First", expected_version=self.q.version)
        self.q.refresh_from_db()
        assert self.q.answer == "First"

    def test_toggle_display_flips_and_needs_screen_status(self):
        services.toggle_display(self.q.pk)
        self.q.refresh_from_db()
        assert self.q.is_displayed is True
        services.toggle_display(self.q.pk)
        self.q.refresh_from_db()
        assert self.q.is_displayed is False

        pending = Question.objects.create(session=self.session, content="Later?")
        with pytest.raises(StateError):
            services.toggle_display(pending.pk)

    def test_display_has_no_exclusivity(self):
        other = Question.objects.create(
            session=self.session, content="And?", status=Question.Status.ANSWERED
        )
        services.toggle_display(self.q.pk)
        services.toggle_display(other.pk)
        assert Question.objects.filter(is_displayed=True).count() == 2  # noqa: PLR2004

    def test_delete_from_any_status(self):
        services.hide(self.q.pk)
        deleted = services.delete_question(self.q.pk)
        assert deleted.pk == self.q.pk
        assert not Question.objects.filter(pk=self.q.pk).exists()


@pytest.mark.django_db
class TestAssignPresenter:
    def setup_method(self):
        self.session = LiveSession.objects.create(title="Panel", code="PAN2")
        self.q = Question.objects.create(session=self.session, content="Who?")
        self.confirmed = SessionPresenter.objects.create(
            session=self.session,
            presenter_type=SessionPresenter.PresenterType.MANUAL,
            status=SessionPresenter.Status.CONFIRMED,
            display_name="Jane",
        )

    def test_assign_and_clear(self):
        services.assign_presenter(self.q.pk, self.confirmed.pk)
        self.q.refresh_from_db()
        assert self.q.presenter == self.confirmed
        services.assign_presenter(self.q.pk, None)
        self.q.refresh_from_db()
        assert self.q.presenter is None

    def test_unconfirmed_presenter_rejected(self):
        pending = SessionPresenter.objects.create(
            session=self.session,
            presenter_type=SessionPresenter.PresenterType.PARTNER,
            partner_ref="p-1",
            display_name="Bob",
        )
        with pytest.raises(ValidationError):
            services.assign_presenter(self.q.pk, pending.pk)

    def test_presenter_from_other_session_rejected(self):
        other = LiveSession.objects.create(title="Other", code="OTH1")
        foreign = SessionPresenter.objects.create(
            session=other,
            presenter_type=SessionPresenter.PresenterType.MANUAL,
            status=SessionPresenter.Status.CONFIRMED,
            display_name="Ann",
        )
        with pytest.raises(ValidationError):
            services.assign_presenter(self.q.pk, foreign.pk)
        self.q.refresh_from_db()
        assert self.q.presenter is None
