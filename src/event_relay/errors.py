"""
Module: errors.py
Description: Error taxonomy for the event relay.

- ValidationError: empty or oversize body, bad arguments. Not retried.
- StoreUnavailable: backend unreachable or timed out. Retryable by the caller.
- NotFound: acknowledge of an unknown or already acknowledged id. Benign.
- PoisonMessage: describes a message rerouted to the dead-letter sink.
  Never raised to consumers, only logged and recorded.
"""


class RelayError(Exception):
    """Base class for all relay errors."""


class ValidationError(RelayError, ValueError):
    """Input rejected before any store work was done."""


class EmptyPayload(ValidationError):
    """Message body was empty."""

    def __init__(self, message: str = "Message body must not be empty"):
        super().__init__(message)


class PayloadTooLarge(ValidationError):
    """Message body exceeded the configured size limit."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Message body of {size} bytes exceeds limit of {limit} bytes")


class StoreUnavailable(RelayError):
    """Backing store could not complete the operation in time."""


class NotFound(RelayError, LookupError):
    """Message does not exist or was already acknowledged."""

    def __init__(self, message_id: str):
        self.message_id = message_id
        super().__init__(f"Message {message_id} not found")


class PoisonMessage(RelayError):
    """Message exceeded its redelivery threshold."""

    def __init__(self, message_id: str, dequeue_count: int, threshold: int):
        self.message_id = message_id
        self.dequeue_count = dequeue_count
        self.threshold = threshold
        super().__init__(
            f"Message {message_id} delivered {dequeue_count} times "
            f"without acknowledgment (threshold {threshold})"
        )
