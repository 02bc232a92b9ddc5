"""
Module: storage
Description: Package initialization for the queue persistence layer.

This package contains queue backends for the event relay:
- base: QueueStore and DeadLetterSink contracts
- memory: In-process backend for development and tests
- dynamodb: Durable DynamoDB backend

Backends are synchronous; the QueueClient serializes access to them.
"""

__all__ = []
