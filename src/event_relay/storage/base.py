"""
Module: base.py
Description: Storage contracts for queue backends.

Any durable store that can satisfy these two protocols can back a
QueueClient. Implementations are synchronous and raise StoreUnavailable
when the backend cannot complete an operation; the QueueClient
serializes calls and applies timeouts.
"""

from datetime import datetime
from typing import List, Optional, Protocol

from event_relay.models.message import DeadLetter, Message


class QueueStore(Protocol):
    """Holds the live message set of one queue."""

    def create(self) -> None:
        """Create the backing storage if it does not exist."""

    def put(self, message: Message) -> None:
        """Insert or replace a message."""

    def get(self, message_id: str) -> Optional[Message]:
        """Return a message by id, or None."""

    def delete(self, message_id: str) -> bool:
        """Delete a message. Return False if it did not exist."""

    def list_messages(self, visible_before: Optional[datetime] = None) -> List[Message]:
        """
        List messages ordered by enqueued_at, then message_id.

        Args:
            visible_before: If given, only messages with visible_at <= this
        """


class DeadLetterSink(Protocol):
    """Append-only store for messages removed from delivery."""

    def create(self) -> None:
        """Create the backing storage if it does not exist."""

    def append(self, record: DeadLetter) -> None:
        """Record a dead-lettered message."""

    def list_records(self, limit: Optional[int] = None) -> List[DeadLetter]:
        """List records, oldest first."""
