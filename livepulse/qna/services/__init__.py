"""Q&A moderation services.

Views, Socket.IO handlers and tests call these functions; nothing else writes
to ``Question`` rows.
"""

from .broadcast import BroadcastToggle
from .broadcast import current_broadcast
from .broadcast import toggle_broadcast
from .moderation import SCREEN_STATUSES
from .moderation import TRANSITIONS
from .moderation import answer
from .moderation import approve
from .moderation import assign_presenter
from .moderation import can_transition
from .moderation import delete_question
from .moderation import hide
from .moderation import pin
from .moderation import reject
from .moderation import toggle_display
from .moderation import unhide
from .moderation import unpin
from .ordering import highlight
from .ordering import reorder
from .ordering import unhighlight
from .submissions import LikeToggle
from .submissions import add_manual_question
from .submissions import submit_question
from .submissions import toggle_like

__all__ = [
    "SCREEN_STATUSES",
    "TRANSITIONS",
    "BroadcastToggle",
    "LikeToggle",
    "add_manual_question",
    "answer",
    "approve",
    "assign_presenter",
    "can_transition",
    "current_broadcast",
    "delete_question",
    "hide",
    "highlight",
    "pin",
    "reject",
    "reorder",
    "submit_question",
    "toggle_broadcast",
    "toggle_display",
    "toggle_like",
    "unhide",
    "unhighlight",
    "unpin",
]
