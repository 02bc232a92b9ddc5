"""
Module: test_dynamodb.py
Description: Unit tests for the DynamoDB queue backend.

Tests DynamoDBQueueStore and DynamoDBDeadLetterSink against moto,
covering table creation, serialization round trips, visibility
filtering and error translation.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from event_relay.errors import NotFound, StoreUnavailable
from event_relay.message_queue.client import QueueClient
from event_relay.models.message import DeadLetter, Message, new_message_id
from event_relay.storage.dynamodb import DynamoDBQueueStore


def _client_error(code="InternalServerError", operation="PutItem"):
    return ClientError(
        error_response={'Error': {'Code': code, 'Message': 'Test error'}},
        operation_name=operation
    )


class TestDynamoDBQueueStore:
    """Test cases for DynamoDBQueueStore operations."""

    def test_initialization_invalid_table_name(self, dynamodb_resource):
        with pytest.raises(ValueError, match="table_name must be a non-empty string"):
            DynamoDBQueueStore("", dynamodb_resource)

    def test_create_makes_table(self, dynamodb_resource):
        store = DynamoDBQueueStore("fresh-queue", dynamodb_resource)
        store.create()

        assert dynamodb_resource.Table("fresh-queue").table_status == "ACTIVE"

    def test_create_is_idempotent(self, dynamodb_store):
        dynamodb_store.create()
        assert dynamodb_store.table.table_status == "ACTIVE"

    def test_put_and_get_round_trip(self, dynamodb_store, sample_message):
        dynamodb_store.put(sample_message)

        retrieved = dynamodb_store.get(sample_message.message_id)

        assert retrieved == sample_message
        assert isinstance(retrieved.body, bytes)
        assert retrieved.enqueued_at.tzinfo is not None

    def test_binary_body_preserved(self, dynamodb_store, clock):
        message = Message(
            message_id=new_message_id(),
            body=bytes(range(256)),
            enqueued_at=clock(),
            visible_at=clock()
        )
        dynamodb_store.put(message)

        assert dynamodb_store.get(message.message_id).body == bytes(range(256))

    def test_get_missing_returns_none(self, dynamodb_store):
        assert dynamodb_store.get(new_message_id()) is None

    def test_delete(self, dynamodb_store, sample_message):
        dynamodb_store.put(sample_message)

        assert dynamodb_store.delete(sample_message.message_id) is True
        assert dynamodb_store.delete(sample_message.message_id) is False
        assert dynamodb_store.get(sample_message.message_id) is None

    def test_list_messages_ordered_and_filtered(self, dynamodb_store, clock):
        messages = [
            Message(
                message_id=new_message_id(),
                body=f"{i}".encode(),
                enqueued_at=clock() + timedelta(microseconds=i),
                visible_at=clock() + timedelta(seconds=30 if i == 1 else 0)
            )
            for i in range(4)
        ]
        for message in reversed(messages):
            dynamodb_store.put(message)

        assert dynamodb_store.list_messages() == messages
        assert dynamodb_store.list_messages(visible_before=clock()) == [
            messages[0], messages[2], messages[3]
        ]

    def test_put_error_raises_store_unavailable(self, dynamodb_store, sample_message):
        with patch.object(dynamodb_store.table, 'put_item', side_effect=_client_error()):
            with pytest.raises(StoreUnavailable, match="InternalServerError"):
                dynamodb_store.put(sample_message)

    def test_connection_error_raises_store_unavailable(self, dynamodb_store):
        error = EndpointConnectionError(endpoint_url="http://localhost:1")
        with patch.object(dynamodb_store.table, 'get_item', side_effect=error):
            with pytest.raises(StoreUnavailable):
                dynamodb_store.get(new_message_id())

    def test_scan_error_raises_store_unavailable(self, dynamodb_store):
        with patch.object(dynamodb_store.table, 'scan', side_effect=_client_error(operation="Scan")):
            with pytest.raises(StoreUnavailable):
                dynamodb_store.list_messages()


class TestDynamoDBDeadLetterSink:
    """Test cases for DynamoDBDeadLetterSink operations."""

    def test_append_and_list(self, dynamodb_sink, sample_message, clock):
        record = DeadLetter(message=sample_message, reason="poison", dead_lettered_at=clock())

        dynamodb_sink.append(record)

        assert dynamodb_sink.list_records() == [record]

    def test_duplicate_append_ignored(self, dynamodb_sink, sample_message, clock):
        first = DeadLetter(message=sample_message, reason="first", dead_lettered_at=clock())
        second = DeadLetter(
            message=sample_message,
            reason="second",
            dead_lettered_at=clock() + timedelta(seconds=1)
        )

        dynamodb_sink.append(first)
        dynamodb_sink.append(second)

        assert [r.reason for r in dynamodb_sink.list_records()] == ["first"]

    def test_list_records_ordered_and_limited(self, dynamodb_sink, clock):
        records = [
            DeadLetter(
                message=Message(
                    message_id=new_message_id(),
                    body=b"x",
                    enqueued_at=clock(),
                    visible_at=clock()
                ),
                reason=f"reason-{i}",
                dead_lettered_at=clock() + timedelta(seconds=i)
            )
            for i in range(3)
        ]
        for record in reversed(records):
            dynamodb_sink.append(record)

        assert dynamodb_sink.list_records(limit=2) == records[:2]

    def test_append_error_raises_store_unavailable(self, dynamodb_sink, sample_message, clock):
        record = DeadLetter(message=sample_message, reason="poison", dead_lettered_at=clock())
        with patch.object(dynamodb_sink.table, 'put_item', side_effect=_client_error()):
            with pytest.raises(StoreUnavailable):
                dynamodb_sink.append(record)


class TestQueueClientOnDynamoDB:
    """End-to-end queue behavior over the DynamoDB backend."""

    @pytest.mark.asyncio
    async def test_enqueue_lease_ack_and_poison(self, dynamodb_store, dynamodb_sink, clock):
        client = QueueClient(
            dynamodb_store,
            dynamodb_sink,
            poison_threshold=2,
            clock=clock
        )

        acked_id = await client.enqueue(b'{"data":"sample"}')
        poison_id = await client.enqueue(b'{"data":"poison"}')

        message = await client.dequeue(lease_duration=5)
        assert message.message_id == acked_id
        assert message.body == b'{"data":"sample"}'
        await client.acknowledge(acked_id)
        with pytest.raises(NotFound):
            await client.acknowledge(acked_id)

        for _ in range(2):
            leased = await client.dequeue(lease_duration=5)
            assert leased.message_id == poison_id
            clock.advance(5)

        assert await client.dequeue() is None
        records = await client.list_dead_letters()
        assert [r.message.message_id for r in records] == [poison_id]
        assert (await client.stats()).dead_lettered == 1
