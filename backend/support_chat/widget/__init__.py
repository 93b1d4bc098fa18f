"""Widget module - the visitor-side support conversation lifecycle."""

from .conversation import Conversation, welcome_message
from .identity_store import LocalIdentityStore
from .inbox_client import InboxClient, InboxSnapshot, InboxUnavailableError
from .notifications import UnreadNotificationController
from .reconciliation import ReconcileResult, ReconciliationEngine, merge_transcript
from .resolution import ResolutionState, ResolutionStateMachine
from .scheduler import PollingScheduler
from .session import ChatActionError, ChatWidget, WidgetStep
from .timers import TimerHandle

__all__ = [
    "ChatActionError",
    "ChatWidget",
    "Conversation",
    "InboxClient",
    "InboxSnapshot",
    "InboxUnavailableError",
    "LocalIdentityStore",
    "PollingScheduler",
    "ReconcileResult",
    "ReconciliationEngine",
    "ResolutionState",
    "ResolutionStateMachine",
    "TimerHandle",
    "UnreadNotificationController",
    "WidgetStep",
    "merge_transcript",
    "welcome_message",
]
