"""
Module: memory.py
Description: In-process queue backend.

Keeps messages in a dict keyed by message id. Used for local
development and tests; contents are lost when the process exits.
"""

from datetime import datetime
from typing import Dict, List, Optional

from event_relay.models.message import DeadLetter, Message
from event_relay.utils.logger import get_logger

logger = get_logger(__name__)


class InMemoryQueueStore:
    """Dict-backed QueueStore."""

    def __init__(self, name: str = "memory"):
        self.name = name
        self._messages: Dict[str, Message] = {}

    def create(self) -> None:
        logger.debug("In-memory queue store ready", queue_name=self.name)

    def put(self, message: Message) -> None:
        self._messages[message.message_id] = message

    def get(self, message_id: str) -> Optional[Message]:
        return self._messages.get(message_id)

    def delete(self, message_id: str) -> bool:
        return self._messages.pop(message_id, None) is not None

    def list_messages(self, visible_before: Optional[datetime] = None) -> List[Message]:
        messages = list(self._messages.values())
        if visible_before is not None:
            messages = [m for m in messages if m.is_visible(visible_before)]
        return sorted(messages, key=lambda m: m.sort_key)


class InMemoryDeadLetterSink:
    """List-backed DeadLetterSink."""

    def __init__(self, name: str = "memory-dead-letter"):
        self.name = name
        self._records: List[DeadLetter] = []

    def create(self) -> None:
        logger.debug("In-memory dead-letter sink ready", target=self.name)

    def append(self, record: DeadLetter) -> None:
        self._records.append(record)

    def list_records(self, limit: Optional[int] = None) -> List[DeadLetter]:
        records = list(self._records)
        return records if limit is None else records[:limit]
