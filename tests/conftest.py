"""
Module: conftest.py
Description: Shared pytest fixtures for event relay tests.

Provides settings, a controllable clock, in-memory and moto-backed
DynamoDB queue backends, and ready-made QueueClient instances.
"""

from datetime import datetime, timedelta, timezone

import pytest
from moto import mock_aws

from event_relay.config.settings import Settings
from event_relay.message_queue.client import QueueClient
from event_relay.models.message import Message
from event_relay.storage.dynamodb import (
    DynamoDBDeadLetterSink,
    DynamoDBQueueStore,
    build_dynamodb_resource,
)
from event_relay.storage.memory import InMemoryDeadLetterSink, InMemoryQueueStore


class FakeClock:
    """Time source that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def test_settings():
    """
    Provide test configuration settings.

    Disables .env loading for predictable tests and uses a small body
    limit and a long sweep interval.
    """
    return Settings(
        _env_file=None,
        app_name="Event Relay Test",
        app_version="0.1.0-test",
        log_level="DEBUG",
        stage="test",
        backend="memory",
        queue_name="test-queue",
        dead_letter_target="test-dead-letter",
        max_body_size=64,
        poison_threshold=3,
        lease_duration=30.0,
        store_timeout=2.0,
        sweep_interval=3600.0
    )


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc))


@pytest.fixture
def memory_store():
    return InMemoryQueueStore("test-queue")


@pytest.fixture
def memory_sink():
    return InMemoryDeadLetterSink("test-dead-letter")


@pytest.fixture
def queue_client(memory_store, memory_sink, clock):
    """QueueClient over in-memory backends with a fake clock."""
    return QueueClient(
        memory_store,
        memory_sink,
        max_body_size=64,
        poison_threshold=3,
        lease_duration=30.0,
        timeout=2.0,
        clock=clock
    )


@pytest.fixture
def sample_message(clock):
    return Message(
        message_id="msg_" + "a" * 32,
        body=b'{"data":"sample"}',
        enqueued_at=clock(),
        visible_at=clock(),
        dequeue_count=0
    )


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches real AWS."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def dynamodb_resource(aws_credentials):
    """DynamoDB resource backed by moto for the duration of a test."""
    with mock_aws():
        yield build_dynamodb_resource(region="us-east-1")


@pytest.fixture
def dynamodb_store(dynamodb_resource):
    store = DynamoDBQueueStore("test-queue", dynamodb_resource)
    store.create()
    return store


@pytest.fixture
def dynamodb_sink(dynamodb_resource):
    sink = DynamoDBDeadLetterSink("test-dead-letter", dynamodb_resource)
    sink.create()
    return sink
