"""
Module: client.py
Description: Queue client with lease-based, at-least-once delivery.

Owns one queue's message set through a QueueStore and a DeadLetterSink.
Every operation runs its store work on a worker thread under a single
lock, so enqueue, the select-and-lease step of dequeue, acknowledge and
sweep are linearizable and a message is never leased to two callers at
once. Operations are bounded by a timeout and surface StoreUnavailable
instead of blocking indefinitely.

Key Components:
- QueueClient: enqueue(), dequeue(), acknowledge(), peek(), sweep()
- Poison routing: messages delivered poison_threshold times without an
  acknowledgment go to the dead-letter sink instead of being redelivered

Dependencies: asyncio, threading, time, datetime, typing
"""

import asyncio
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from event_relay.config.settings import Settings
from event_relay.errors import (
    EmptyPayload,
    NotFound,
    PayloadTooLarge,
    PoisonMessage,
    StoreUnavailable,
    ValidationError,
)
from event_relay.models.message import (
    DeadLetter,
    Message,
    QueueStats,
    SweepResult,
    new_message_id,
)
from event_relay.storage.base import DeadLetterSink, QueueStore
from event_relay.utils.logger import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QueueClient:
    """
    Durable FIFO queue with visibility leases.

    Attributes:
        store: Backend holding live messages
        dead_letters: Sink for poison messages
        max_body_size: Largest accepted body in bytes
        poison_threshold: Deliveries allowed before dead-lettering
        lease_duration: Default visibility window in seconds
        timeout: Bound in seconds on any single operation

    Example:
        >>> client = QueueClient(InMemoryQueueStore(), InMemoryDeadLetterSink())
        >>> message_id = await client.enqueue(b'{"data":"sample"}')
        >>> message = await client.dequeue()
        >>> await client.acknowledge(message.message_id)
    """

    def __init__(
        self,
        store: QueueStore,
        dead_letters: DeadLetterSink,
        max_body_size: int = 64 * 1024,
        poison_threshold: int = 5,
        lease_duration: float = 30.0,
        timeout: float = 5.0,
        clock: Optional[Clock] = None
    ):
        if max_body_size < 1:
            raise ValueError("max_body_size must be at least 1")
        if poison_threshold < 1:
            raise ValueError("poison_threshold must be at least 1")
        if lease_duration < 0:
            raise ValueError("lease_duration must not be negative")
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        self.store = store
        self.dead_letters = dead_letters
        self.max_body_size = max_body_size
        self.poison_threshold = poison_threshold
        self.lease_duration = lease_duration
        self.timeout = timeout
        self._clock = clock or utc_now
        self._lock = threading.Lock()
        self._last_enqueued_at: Optional[datetime] = None
        self._last_sweep_at: Optional[datetime] = None

    @classmethod
    def from_settings(cls, settings: Settings, clock: Optional[Clock] = None) -> "QueueClient":
        """
        Build a client for the backend named in settings.

        Args:
            settings: Application settings
            clock: Optional time source (tests)

        Returns:
            Configured QueueClient
        """
        if settings.backend == "dynamodb":
            from event_relay.storage.dynamodb import (
                DynamoDBDeadLetterSink,
                DynamoDBQueueStore,
                build_dynamodb_resource,
            )

            resource = build_dynamodb_resource(
                region=settings.aws_region,
                endpoint_url=settings.backend_endpoint,
                profile_name=settings.credential_reference,
                timeout=settings.store_timeout
            )
            store = DynamoDBQueueStore(settings.queue_name, resource)
            sink = DynamoDBDeadLetterSink(settings.dead_letter_target, resource)
        else:
            from event_relay.storage.memory import InMemoryDeadLetterSink, InMemoryQueueStore

            store = InMemoryQueueStore(settings.queue_name)
            sink = InMemoryDeadLetterSink(settings.dead_letter_target)

        logger.info(
            "Queue client configured",
            backend=settings.backend,
            queue_name=settings.queue_name,
            dead_letter_target=settings.dead_letter_target,
            poison_threshold=settings.poison_threshold,
            lease_duration=settings.lease_duration
        )

        return cls(
            store,
            sink,
            max_body_size=settings.max_body_size,
            poison_threshold=settings.poison_threshold,
            lease_duration=settings.lease_duration,
            timeout=settings.store_timeout,
            clock=clock
        )

    async def _run(self, operation: str, fn: Callable, *args):
        """
        Run ``fn`` on a worker thread under the queue lock, bounded by the timeout.

        Once the caller has been told StoreUnavailable, a worker that has not
        yet entered ``fn`` skips it. Only a backend call already in flight
        when the deadline passes can still complete.
        """
        abandoned = threading.Event()
        deadline = time.monotonic() + self.timeout
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._locked, operation, abandoned, deadline, fn, *args),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            abandoned.set()
            logger.error(
                "Queue operation timed out",
                operation=operation,
                timeout_seconds=self.timeout
            )
            raise StoreUnavailable(
                f"{operation} did not complete within {self.timeout} seconds"
            ) from None

    def _locked(
        self,
        operation: str,
        abandoned: threading.Event,
        deadline: float,
        fn: Callable,
        *args
    ):
        if not self._lock.acquire(timeout=max(0.0, deadline - time.monotonic())):
            raise StoreUnavailable(f"{operation} could not acquire the queue lock")
        try:
            if abandoned.is_set() or time.monotonic() >= deadline:
                logger.warning("Skipping timed out queue operation", operation=operation)
                raise StoreUnavailable(f"{operation} abandoned after its deadline")
            return fn(*args)
        finally:
            self._lock.release()

    async def create(self) -> None:
        """Create the backing store and dead-letter sink if missing."""
        await self._run("create", self._create)

    def _create(self) -> None:
        self.store.create()
        self.dead_letters.create()

    async def enqueue(self, body: bytes) -> str:
        """
        Persist a new message and return its id.

        Args:
            body: Raw payload, 1..max_body_size bytes

        Returns:
            The assigned message id

        Raises:
            EmptyPayload: If body is empty
            PayloadTooLarge: If body exceeds max_body_size
            StoreUnavailable: If the message could not be persisted in time
        """
        if not isinstance(body, (bytes, bytearray)):
            raise ValidationError("body must be bytes")
        if not body:
            raise EmptyPayload()
        if len(body) > self.max_body_size:
            raise PayloadTooLarge(len(body), self.max_body_size)

        return await self._run("enqueue", self._enqueue, bytes(body))

    def _enqueue(self, body: bytes) -> str:
        now = self._clock()
        enqueued_at = now
        # Keep enqueue order strict even when the clock has not moved
        if self._last_enqueued_at is not None and enqueued_at <= self._last_enqueued_at:
            enqueued_at = self._last_enqueued_at + timedelta(microseconds=1)

        message = Message(
            message_id=new_message_id(),
            body=body,
            enqueued_at=enqueued_at,
            visible_at=now,
            dequeue_count=0
        )
        self.store.put(message)
        self._last_enqueued_at = enqueued_at

        logger.info(
            "Message enqueued",
            message_id=message.message_id,
            size=len(body)
        )
        return message.message_id

    async def dequeue(self, lease_duration: Optional[float] = None) -> Optional[Message]:
        """
        Lease the oldest visible message.

        Args:
            lease_duration: Visibility window in seconds (defaults to the
                configured lease)

        Returns:
            The leased message, or None if no message is visible

        Raises:
            ValidationError: If lease_duration is negative
            StoreUnavailable: If the store could not be reached in time
        """
        if lease_duration is None:
            lease_duration = self.lease_duration
        if lease_duration < 0:
            raise ValidationError("lease_duration must not be negative")

        return await self._run("dequeue", self._dequeue, lease_duration)

    def _dequeue(self, lease_duration: float) -> Optional[Message]:
        now = self._clock()
        for message in self.store.list_messages(visible_before=now):
            if message.dequeue_count >= self.poison_threshold:
                self._dead_letter(message, now)
                continue

            leased = message.lease(now, lease_duration)
            self.store.put(leased)

            logger.info(
                "Message leased",
                message_id=leased.message_id,
                dequeue_count=leased.dequeue_count,
                visible_at=leased.visible_at.isoformat()
            )
            return leased

        return None

    async def acknowledge(self, message_id: str) -> None:
        """
        Permanently delete a delivered message.

        Raises:
            NotFound: If the id is unknown or already acknowledged
            StoreUnavailable: If the store could not be reached in time
        """
        if not message_id or not isinstance(message_id, str):
            raise ValidationError("message_id must be a non-empty string")

        await self._run("acknowledge", self._acknowledge, message_id)

    def _acknowledge(self, message_id: str) -> None:
        if not self.store.delete(message_id):
            logger.info("Acknowledge for unknown message", message_id=message_id)
            raise NotFound(message_id)

        logger.info("Message acknowledged", message_id=message_id)

    async def peek(self, count: int = 1) -> List[Message]:
        """Return up to ``count`` visible messages, oldest first, without leasing them."""
        if count < 1:
            raise ValidationError("count must be at least 1")

        return await self._run("peek", self._peek, count)

    def _peek(self, count: int) -> List[Message]:
        return self.store.list_messages(visible_before=self._clock())[:count]

    async def sweep(self) -> SweepResult:
        """
        Dead-letter poison messages whose lease expired and count expired leases.

        Returns:
            SweepResult for this pass
        """
        return await self._run("sweep", self._sweep)

    def _sweep(self) -> SweepResult:
        now = self._clock()
        since = self._last_sweep_at
        result = SweepResult()
        for message in self.store.list_messages(visible_before=now):
            if message.dequeue_count >= self.poison_threshold:
                self._dead_letter(message, now)
                result.dead_lettered += 1
            elif message.dequeue_count > 0 and (since is None or message.visible_at > since):
                # Only leases that lapsed since the previous pass
                result.expired_leases += 1
        self._last_sweep_at = now

        if result.dead_lettered or result.expired_leases:
            logger.info(
                "Lease sweep completed",
                expired_leases=result.expired_leases,
                dead_lettered=result.dead_lettered
            )
        return result

    async def stats(self) -> QueueStats:
        """Count visible, leased and dead-lettered messages."""
        return await self._run("stats", self._stats)

    def _stats(self) -> QueueStats:
        now = self._clock()
        messages = self.store.list_messages()
        visible = sum(1 for m in messages if m.is_visible(now))
        return QueueStats(
            visible=visible,
            leased=len(messages) - visible,
            dead_lettered=len(self.dead_letters.list_records())
        )

    async def list_dead_letters(self, limit: Optional[int] = None) -> List[DeadLetter]:
        """Return dead-lettered records, oldest first."""
        if limit is not None and limit < 1:
            raise ValidationError("limit must be at least 1")

        return await self._run("list_dead_letters", self.dead_letters.list_records, limit)

    def _dead_letter(self, message: Message, now: datetime) -> None:
        poison = PoisonMessage(message.message_id, message.dequeue_count, self.poison_threshold)
        # Append before delete; the message must exist in at least one place
        self.dead_letters.append(DeadLetter(
            message=message,
            reason=str(poison),
            dead_lettered_at=now
        ))
        self.store.delete(message.message_id)

        logger.warning(
            "Poison message moved to dead-letter sink",
            message_id=message.message_id,
            dequeue_count=message.dequeue_count,
            poison_threshold=self.poison_threshold
        )
