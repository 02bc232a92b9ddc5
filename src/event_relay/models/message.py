"""
Module: message.py
Description: Message data models for the event relay.

Defines the queued Message with its visibility and delivery tracking,
the append-only DeadLetter record, and the summary models returned by
queue maintenance operations.

Key Components:
- Message: Immutable queued message; leasing produces a new copy
- DeadLetter: Record of a message rerouted out of normal delivery
- QueueStats / SweepResult: Queue inspection results
- new_message_id(): Message ID generation

Dependencies: pydantic, datetime, uuid
"""

from datetime import datetime, timedelta
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_message_id() -> str:
    """Generate a unique message identifier."""
    return f"msg_{uuid4().hex}"


class Message(BaseModel):
    """
    A message held by the queue.

    Messages are frozen; state transitions return an updated copy that
    replaces the stored one.

    Attributes:
        message_id: Unique message identifier (assigned at enqueue)
        body: Raw payload bytes
        enqueued_at: Timestamp when the message was accepted
        visible_at: Timestamp after which the message can be dequeued
        dequeue_count: Number of delivery attempts made
    """

    model_config = ConfigDict(frozen=True)

    message_id: str = Field(
        ...,
        description="Unique message identifier",
        pattern=r"^msg_[a-f0-9]{32}$"
    )
    body: bytes = Field(
        ...,
        min_length=1,
        description="Raw message payload"
    )
    enqueued_at: datetime = Field(
        ...,
        description="Enqueue timestamp"
    )
    visible_at: datetime = Field(
        ...,
        description="Timestamp from which the message is eligible for delivery"
    )
    dequeue_count: int = Field(
        default=0,
        ge=0,
        description="Number of delivery attempts"
    )

    @property
    def sort_key(self):
        """Delivery order: oldest first, ties broken by id."""
        return (self.enqueued_at, self.message_id)

    def is_visible(self, now: datetime) -> bool:
        """Return True if the message can be delivered at ``now``."""
        return self.visible_at <= now

    def lease(self, now: datetime, duration: float) -> "Message":
        """Return a copy hidden until ``now + duration`` with one more delivery counted."""
        return self.model_copy(update={
            "visible_at": now + timedelta(seconds=duration),
            "dequeue_count": self.dequeue_count + 1,
        })


class DeadLetter(BaseModel):
    """
    A message removed from normal delivery.

    Attributes:
        message: The message as it was when rerouted
        reason: Why the message was dead-lettered
        dead_lettered_at: When it was rerouted
    """

    model_config = ConfigDict(frozen=True)

    message: Message
    reason: str = Field(..., min_length=1)
    dead_lettered_at: datetime


class QueueStats(BaseModel):
    """Point-in-time message counts for a queue."""

    visible: int = Field(default=0, ge=0)
    leased: int = Field(default=0, ge=0)
    dead_lettered: int = Field(default=0, ge=0)


class SweepResult(BaseModel):
    """Outcome of a single lease sweep."""

    expired_leases: int = Field(default=0, ge=0)
    dead_lettered: int = Field(default=0, ge=0)
