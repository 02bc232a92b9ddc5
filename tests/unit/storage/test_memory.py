"""
Module: test_memory.py
Description: Unit tests for the in-memory queue backend.
"""

from datetime import timedelta

from event_relay.models.message import DeadLetter, Message, new_message_id


def _message(clock, offset=0, visible_offset=0):
    return Message(
        message_id=new_message_id(),
        body=b"x",
        enqueued_at=clock() + timedelta(seconds=offset),
        visible_at=clock() + timedelta(seconds=visible_offset)
    )


class TestInMemoryQueueStore:
    """Test cases for InMemoryQueueStore."""

    def test_put_get_delete(self, memory_store, sample_message):
        memory_store.create()
        memory_store.put(sample_message)

        assert memory_store.get(sample_message.message_id) == sample_message
        assert memory_store.delete(sample_message.message_id) is True
        assert memory_store.get(sample_message.message_id) is None
        assert memory_store.delete(sample_message.message_id) is False

    def test_put_replaces_existing(self, memory_store, sample_message, clock):
        memory_store.put(sample_message)
        memory_store.put(sample_message.lease(clock(), 10))

        assert memory_store.get(sample_message.message_id).dequeue_count == 1
        assert len(memory_store.list_messages()) == 1

    def test_list_orders_by_enqueue_time(self, memory_store, clock):
        later = _message(clock, offset=5)
        earlier = _message(clock, offset=1)
        memory_store.put(later)
        memory_store.put(earlier)

        assert memory_store.list_messages() == [earlier, later]

    def test_list_breaks_ties_by_id(self, memory_store, clock):
        first = _message(clock)
        second = _message(clock)
        memory_store.put(first)
        memory_store.put(second)

        expected = sorted([first, second], key=lambda m: m.message_id)
        assert memory_store.list_messages() == expected

    def test_list_filters_by_visibility(self, memory_store, clock):
        visible = _message(clock)
        hidden = _message(clock, visible_offset=30)
        memory_store.put(visible)
        memory_store.put(hidden)

        assert memory_store.list_messages(visible_before=clock()) == [visible]
        assert len(memory_store.list_messages()) == 2


class TestInMemoryDeadLetterSink:
    """Test cases for InMemoryDeadLetterSink."""

    def test_append_and_list(self, memory_sink, sample_message, clock):
        memory_sink.create()
        for reason in ("first", "second", "third"):
            memory_sink.append(DeadLetter(
                message=sample_message,
                reason=reason,
                dead_lettered_at=clock()
            ))

        assert [r.reason for r in memory_sink.list_records()] == ["first", "second", "third"]
        assert [r.reason for r in memory_sink.list_records(limit=2)] == ["first", "second"]
