from nudges.content import NudgeContentGenerator, NudgePrompts
from nudges.dispatcher import NotificationDispatcher
from nudges.inserter import MessageInserter
from nudges.models import Candidate, Character, Session, TickResult
from nudges.rate_limiter import NudgeRateLimiter
from nudges.run_lock import RunLock
from nudges.selector import EligibilitySelector
from nudges.tick import NudgeTick

__all__ = [
    "Candidate",
    "Character",
    "EligibilitySelector",
    "MessageInserter",
    "NotificationDispatcher",
    "NudgeContentGenerator",
    "NudgePrompts",
    "NudgeRateLimiter",
    "NudgeTick",
    "RunLock",
    "Session",
    "TickResult",
]
