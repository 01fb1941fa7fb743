"""In-process change stream for committed question writes.

Model signals publish one ``Change`` per committed question insert, update or
delete, and the session service publishes one per broadcast settings update.
``ChangeStream`` hands it to every callback subscribed to the change's
session; Socket.IO fanout and ``SessionSubscription`` are both consumers.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Callable

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"
SETTINGS = "settings"


class Audience(str, Enum):
    """Subscriber classes; each sees its own projection of a change."""

    MODERATOR = "moderator"
    AUDIENCE = "audience"
    BROADCAST = "broadcast"
    PRESENTER = "presenter"


@dataclass(frozen=True)
class Change:
    """One committed write: ``old`` is None on insert, ``new`` None on delete.

    For ``SETTINGS`` changes ``new`` is the stored broadcast settings object.
    """

    session_id: int
    event_type: str
    old: dict[str, Any] | None
    new: dict[str, Any] | None

    @property
    def row(self) -> dict[str, Any]:
        return self.new if self.new is not None else self.old


class ChangeStream:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[int, list[Callable[[Change], None]]] = defaultdict(
            list
        )

    def subscribe(self, session_id: int, callback: Callable[[Change], None]) -> None:
        with self._lock:
            self._subscribers[int(session_id)].append(callback)

    def unsubscribe(self, session_id: int, callback: Callable[[Change], None]) -> None:
        with self._lock:
            callbacks = self._subscribers.get(int(session_id), [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._subscribers.pop(int(session_id), None)

    def subscriber_count(self, session_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(int(session_id), []))

    def publish(self, change: Change) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(change.session_id, []))
        for callback in callbacks:
            try:
                callback(change)
            except Exception:
                # One broken consumer must not starve the others.
                logger.exception(
                    "Change subscriber failed for session %s", change.session_id
                )


change_stream = ChangeStream()
