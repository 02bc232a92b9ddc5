"""
Module: response.py
Description: API response models for the event relay.

Defines response models for outgoing API calls. These models structure
the JSON responses returned by the ingress and consumer endpoints.

Key Components:
- EnqueueResponse: Returned by POST /events
- MessageResponse: A queued message as seen by consumers
- DeadLetterResponse: A dead-lettered message record

Dependencies: pydantic, datetime, base64
"""

import base64
from datetime import datetime

from pydantic import BaseModel, Field

from event_relay.models.message import DeadLetter, Message


class EnqueueResponse(BaseModel):
    """Response for an accepted event."""

    message_id: str = Field(
        ...,
        description="Identifier assigned to the enqueued message"
    )


class MessageResponse(BaseModel):
    """
    Response model for a queued message.

    Bodies are opaque bytes and may not be valid UTF-8, so they are
    returned base64 encoded.

    Attributes:
        message_id: Unique message identifier
        body: Base64-encoded message body
        enqueued_at: When the message was enqueued
        visible_at: When the message becomes (or became) visible
        dequeue_count: Number of delivery attempts made
    """

    message_id: str = Field(..., description="Unique message identifier")
    body: str = Field(..., description="Base64-encoded message body")
    enqueued_at: datetime = Field(..., description="Enqueue timestamp")
    visible_at: datetime = Field(..., description="Visibility timestamp")
    dequeue_count: int = Field(..., description="Number of delivery attempts")

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            message_id=message.message_id,
            body=base64.b64encode(message.body).decode("ascii"),
            enqueued_at=message.enqueued_at,
            visible_at=message.visible_at,
            dequeue_count=message.dequeue_count,
        )


class DeadLetterResponse(BaseModel):
    """Response model for a dead-lettered message."""

    message: MessageResponse
    reason: str = Field(..., description="Why the message was dead-lettered")
    dead_lettered_at: datetime = Field(..., description="Dead-letter timestamp")

    @classmethod
    def from_record(cls, record: DeadLetter) -> "DeadLetterResponse":
        return cls(
            message=MessageResponse.from_message(record.message),
            reason=record.reason,
            dead_lettered_at=record.dead_lettered_at,
        )
