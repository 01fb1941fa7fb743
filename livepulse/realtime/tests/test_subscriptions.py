from unittest import mock

import pytest

from livepulse.live.models import LiveSession
from livepulse.qna import services
from livepulse.qna.models import Question
from livepulse.realtime.events.questions import QuestionEvent
from livepulse.realtime.feeds import DEFAULT_BROADCAST_SETTINGS
from livepulse.realtime.feeds import AudienceFeed
from livepulse.realtime.feeds import BroadcastFeed
from livepulse.realtime.feeds import ModeratorFeed
from livepulse.realtime.feeds import PresenterFeed
from livepulse.realtime.streams import Change
from livepulse.realtime.streams import ChangeStream
from livepulse.realtime.subscriptions import SessionSubscription


def feed_row(pk, **overrides):
    base = {
        "id": pk,
        "status": "approved",
        "is_pinned": False,
        "is_highlighted": False,
        "is_broadcasting": False,
        "display_order": pk,
        "likes_count": 0,
        "created_at": f"2024-05-01T10:00:0{pk}+00:00",
    }
    base.update(overrides)
    return base


class TestFeeds:
    def test_apply_is_idempotent_full_row_replace(self):
        feed = ModeratorFeed()
        feed.load([feed_row(1), feed_row(2)])
        event = QuestionEvent("update", feed_row(1, is_pinned=True))
        feed.apply(event)
        feed.apply(event)
        assert len(feed.rows) == 2  # noqa: PLR2004
        assert feed.get(1)["is_pinned"] is True

    def test_out_of_order_updates_to_different_rows_converge(self):
        first, second = ModeratorFeed(), ModeratorFeed()
        a = QuestionEvent("update", feed_row(1, is_pinned=True))
        b = QuestionEvent("update", feed_row(2, is_highlighted=True))
        for feed, events in ((first, (a, b)), (second, (b, a))):
            feed.load([feed_row(1), feed_row(2)])
            for event in events:
                feed.apply(event)
        assert first.rows == second.rows

    def test_moderator_feed_uses_console_order(self):
        feed = ModeratorFeed()
        feed.load(
            [
                feed_row(1, display_order=0),
                feed_row(2, display_order=0, is_pinned=True),
                feed_row(3, display_order=0, is_highlighted=True),
                feed_row(4, display_order=0),
            ]
        )
        assert [row["id"] for row in feed.rows] == [2, 3, 4, 1]

    def test_audience_feed_popular_and_oldest(self):
        rows = [
            feed_row(1, likes_count=5),
            feed_row(2, likes_count=9),
            feed_row(3, is_pinned=True),
        ]
        popular = AudienceFeed()
        popular.load(rows)
        assert [row["id"] for row in popular.rows] == [3, 2, 1]
        oldest = AudienceFeed(sort="oldest")
        oldest.load(rows)
        assert [row["id"] for row in oldest.rows] == [1, 2, 3]

    def test_delete_removes_row(self):
        feed = AudienceFeed()
        feed.load([feed_row(1)])
        feed.apply(QuestionEvent("delete", {"id": 1}))
        assert feed.rows == []

    def test_broadcast_feed_tracks_single_row_and_settings(self):
        feed = BroadcastFeed()
        feed.load({"question": None, "settings": {"fontSize": 90}})
        assert feed.settings["fontSize"] == 90  # noqa: PLR2004
        assert feed.settings["textAlign"] == DEFAULT_BROADCAST_SETTINGS["textAlign"]

        feed.apply(QuestionEvent("insert", feed_row(1, is_broadcasting=True)))
        assert feed.question["id"] == 1
        feed.apply(QuestionEvent("insert", feed_row(2, is_broadcasting=True)))
        feed.apply(QuestionEvent("update", feed_row(1)))
        assert feed.question["id"] == 2  # noqa: PLR2004
        feed.apply(QuestionEvent("update", feed_row(2)))
        assert feed.question is None

        feed.apply(QuestionEvent("settings", {"width": 640}))
        assert feed.settings["width"] == 640  # noqa: PLR2004
        assert feed.settings["fontSize"] == DEFAULT_BROADCAST_SETTINGS["fontSize"]


class TestSessionSubscription:
    def test_start_loads_and_stop_releases(self):
        stream = ChangeStream()
        loader = mock.Mock(return_value=[feed_row(1)])
        sub = SessionSubscription(10, ModeratorFeed(), loader=loader, stream=stream)
        with sub:
            assert sub.active is True
            assert stream.subscriber_count(10) == 1
            loader.assert_called_once_with(10)
            assert [row["id"] for row in sub.feed.rows] == [1]
        assert sub.active is False
        assert stream.subscriber_count(10) == 0

    def test_events_applied_while_active_only(self):
        stream = ChangeStream()
        sub = SessionSubscription(
            10, ModeratorFeed(), loader=lambda _session_id: [], stream=stream
        )
        sub.start()
        stream.publish(
            Change(session_id=10, event_type="insert", old=None, new=feed_row(1))
        )
        assert sub.feed.get(1) is not None
        sub.stop()
        stream.publish(
            Change(session_id=10, event_type="insert", old=None, new=feed_row(2))
        )
        assert sub.feed.get(2) is None

    def test_other_sessions_are_not_delivered(self):
        stream = ChangeStream()
        sub = SessionSubscription(
            10, ModeratorFeed(), loader=lambda _session_id: [], stream=stream
        )
        with sub:
            stream.publish(
                Change(session_id=11, event_type="insert", old=None, new=feed_row(1))
            )
            assert sub.feed.rows == []

    def test_events_are_projected_for_the_feed_audience(self):
        stream = ChangeStream()
        sub = SessionSubscription(
            10, AudienceFeed(), loader=lambda _session_id: [], stream=stream
        )
        with sub:
            stream.publish(
                Change(
                    session_id=10,
                    event_type="insert",
                    old=None,
                    new=feed_row(1, status="pending"),
                )
            )
            assert sub.feed.rows == []

    def test_reconnect_refetches_everything(self):
        stream = ChangeStream()
        loader = mock.Mock(side_effect=[[feed_row(1)], [feed_row(1), feed_row(2)]])
        sub = SessionSubscription(10, ModeratorFeed(), loader=loader, stream=stream)
        with sub:
            sub.handle_reconnect()
            assert loader.call_count == 2  # noqa: PLR2004
            assert [row["id"] for row in sub.feed.rows] == [1, 2]

    def test_failing_subscriber_does_not_block_others(self):
        stream = ChangeStream()
        received = []
        stream.subscribe(10, mock.Mock(side_effect=RuntimeError("boom")))
        stream.subscribe(10, received.append)
        change = Change(session_id=10, event_type="delete", old=feed_row(1), new=None)
        stream.publish(change)
        assert received == [change]


@pytest.mark.django_db
class TestSubscriptionAgainstDatabase:
    def setup_method(self):
        self.session = LiveSession.objects.create(title="Live", code="LIVESUB")
        self.a = Question.objects.create(session=self.session, content="A")
        self.b = Question.objects.create(
            session=self.session, content="B", status=Question.Status.APPROVED
        )

    def test_default_loaders(self):
        with SessionSubscription(self.session.pk, ModeratorFeed()) as moderator:
            assert {row["id"] for row in moderator.feed.rows} == {self.a.pk, self.b.pk}
        with SessionSubscription(self.session.pk, AudienceFeed()) as audience:
            assert [row["id"] for row in audience.feed.rows] == [self.b.pk]
        with SessionSubscription(self.session.pk, BroadcastFeed()) as screen:
            assert screen.feed.question is None

    def test_committed_writes_reach_every_feed(
        self, django_capture_on_commit_callbacks
    ):
        moderator = SessionSubscription(self.session.pk, ModeratorFeed())
        audience = SessionSubscription(self.session.pk, AudienceFeed())
        screen = SessionSubscription(self.session.pk, BroadcastFeed())
        with (
            moderator,
            audience,
            screen,
            mock.patch("livepulse.realtime.events.questions.emit_event_to_session"),
        ):
            with django_capture_on_commit_callbacks(execute=True):
                services.approve(self.a.pk)
            assert audience.feed.get(self.a.pk) is not None

            with django_capture_on_commit_callbacks(execute=True):
                services.toggle_broadcast(self.b.pk)
            with django_capture_on_commit_callbacks(execute=True):
                services.toggle_broadcast(self.a.pk)
            assert screen.feed.question["id"] == self.a.pk
            assert moderator.feed.get(self.b.pk)["is_broadcasting"] is False

            with django_capture_on_commit_callbacks(execute=True):
                services.hide(self.b.pk)
            assert audience.feed.get(self.b.pk) is None
            assert moderator.feed.get(self.b.pk)["status"] == "hidden"

            with django_capture_on_commit_callbacks(execute=True):
                services.delete_question(self.a.pk)
            assert moderator.feed.get(self.a.pk) is None
            assert audience.feed.get(self.a.pk) is None
            assert screen.feed.question is None

    def test_hiding_on_air_question_clears_screen(
        self, django_capture_on_commit_callbacks
    ):
        screen = SessionSubscription(self.session.pk, BroadcastFeed())
        with (
            screen,
            mock.patch("livepulse.realtime.events.questions.emit_event_to_session"),
        ):
            with django_capture_on_commit_callbacks(execute=True):
                services.toggle_broadcast(self.b.pk)
                services.toggle_display(self.b.pk)
            assert screen.feed.question["id"] == self.b.pk

            with django_capture_on_commit_callbacks(execute=True):
                services.hide(self.b.pk)
            assert screen.feed.question is None

            screen.handle_reconnect()
            assert screen.feed.question is None


class TestPresenterFeed:
    def test_running_order(self):
        feed = PresenterFeed()
        feed.load(
            [
                feed_row(1, display_order=1, is_displayed=True),
                feed_row(2, display_order=0, is_displayed=True),
                feed_row(3, display_order=0, is_displayed=True, is_pinned=True),
                feed_row(4, display_order=0, is_displayed=True),
            ]
        )
        assert [row["id"] for row in feed.rows] == [3, 2, 4, 1]


@pytest.mark.django_db
class TestPresenterSubscription:
    def setup_method(self):
        self.session = LiveSession.objects.create(title="Stage", code="STAGE")
        self.q = Question.objects.create(
            session=self.session, content="Next?", status=Question.Status.APPROVED
        )
        Question.objects.create(
            session=self.session,
            content="Queued",
            status=Question.Status.PENDING,
            is_displayed=True,
        )

    def test_loader_lists_displayed_screen_rows_only(self):
        with SessionSubscription(self.session.pk, PresenterFeed()) as screen:
            assert screen.feed.rows == []

    def test_display_and_hide_reach_presenter_screen(
        self, django_capture_on_commit_callbacks
    ):
        screen = SessionSubscription(self.session.pk, PresenterFeed())
        with (
            screen,
            mock.patch("livepulse.realtime.events.questions.emit_event_to_session"),
        ):
            with django_capture_on_commit_callbacks(execute=True):
                services.toggle_display(self.q.pk)
            assert [row["id"] for row in screen.feed.rows] == [self.q.pk]

            with django_capture_on_commit_callbacks(execute=True):
                services.answer(self.q.pk, "Tomorrow")
            assert screen.feed.get(self.q.pk)["answer"] == "Tomorrow"

            with django_capture_on_commit_callbacks(execute=True):
                services.hide(self.q.pk)
            assert screen.feed.rows == []
