from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from livepulse.realtime.events.questions import events_for
from livepulse.realtime.streams import change_stream

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Callable

    from livepulse.realtime.feeds import BroadcastFeed
    from livepulse.realtime.feeds import QuestionFeed
    from livepulse.realtime.streams import Change
    from livepulse.realtime.streams import ChangeStream

logger = logging.getLogger(__name__)


class SessionSubscription:
    """Keeps one feed in sync with one session while started.

    Create one when a consumer starts watching a session and stop it when the
    consumer switches away; use it as a context manager where possible::

        with SessionSubscription(session.id, ModeratorFeed()) as sub:
            render(sub.feed.rows)

    Events are projected for the feed's audience before being applied. There
    is no replay: after any transport gap call ``handle_reconnect`` to reload
    the whole feed through ``loader``.
    """

    def __init__(
        self,
        session_id: int,
        feed: QuestionFeed | BroadcastFeed,
        *,
        loader: Callable | None = None,
        stream: ChangeStream | None = None,
    ):
        self.session_id = int(session_id)
        self.feed = feed
        self.loader = loader or feed.loader
        self.stream = stream or change_stream
        self._lock = threading.Lock()
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> SessionSubscription:
        if self._active:
            return self
        # Subscribe first; events racing the fetch are full rows and idempotent.
        self.stream.subscribe(self.session_id, self._on_change)
        self._active = True
        self.refetch()
        logger.debug(
            "Subscribed %s to session %s", type(self.feed).__name__, self.session_id
        )
        return self

    def stop(self) -> None:
        if not self._active:
            return
        self.stream.unsubscribe(self.session_id, self._on_change)
        self._active = False
        logger.debug(
            "Unsubscribed %s from session %s",
            type(self.feed).__name__,
            self.session_id,
        )

    def refetch(self) -> None:
        with self._lock:
            self.feed.load(self.loader(self.session_id))

    def handle_reconnect(self) -> None:
        logger.info("Session %s stream gap, refetching", self.session_id)
        self.refetch()

    def _on_change(self, change: Change) -> None:
        if not self._active:
            return
        with self._lock:
            for event in events_for(self.feed.audience, change):
                self.feed.apply(event)

    def __enter__(self) -> SessionSubscription:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
