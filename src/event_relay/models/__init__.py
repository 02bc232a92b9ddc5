"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains all data models used by the event relay:
- Message: Queued message with visibility and delivery tracking
- DeadLetter: Record of a message removed from delivery
- EnqueueResponse / MessageResponse / DeadLetterResponse: API responses

All models are exported here for convenient importing.
"""

from .message import DeadLetter, Message, QueueStats, SweepResult, new_message_id
from .response import DeadLetterResponse, EnqueueResponse, MessageResponse

__all__ = [
    "DeadLetter",
    "Message",
    "QueueStats",
    "SweepResult",
    "new_message_id",
    "DeadLetterResponse",
    "EnqueueResponse",
    "MessageResponse",
]
