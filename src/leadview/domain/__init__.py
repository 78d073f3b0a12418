from leadview.domain.models import (
    CommsRollup,
    Conversation,
    LeadView,
    NextActionResult,
    Opportunity,
    Quote,
    QuoteSnapshot,
    StageResult,
    TaskCreationRequest,
    TemperatureResult,
)
from leadview.domain.rules import InvalidConfiguration, InvalidState, ValidationError

__all__ = [
    "CommsRollup",
    "Conversation",
    "InvalidConfiguration",
    "InvalidState",
    "LeadView",
    "NextActionResult",
    "Opportunity",
    "Quote",
    "QuoteSnapshot",
    "StageResult",
    "TaskCreationRequest",
    "TemperatureResult",
    "ValidationError",
]
