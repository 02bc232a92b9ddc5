"""
Module: test_sweeper.py
Description: Unit tests for the background lease sweeper.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from event_relay.errors import StoreUnavailable
from event_relay.message_queue.sweeper import LeaseSweeper


class TestLeaseSweeper:
    """Test cases for LeaseSweeper."""

    def test_invalid_interval(self, queue_client):
        with pytest.raises(ValueError, match="interval must be positive"):
            LeaseSweeper(queue_client, interval=0)

    @pytest.mark.asyncio
    async def test_run_once_dead_letters_poison(self, queue_client, memory_sink, clock):
        await queue_client.enqueue(b"poison")
        for _ in range(3):
            await queue_client.dequeue(lease_duration=1)
            clock.advance(1)

        result = await LeaseSweeper(queue_client).run_once()

        assert result.dead_lettered == 1
        assert len(memory_sink.list_records()) == 1

    @pytest.mark.asyncio
    async def test_run_once_survives_store_failure(self, queue_client):
        sweeper = LeaseSweeper(queue_client)
        with patch.object(
            queue_client, "sweep",
            new_callable=AsyncMock,
            side_effect=StoreUnavailable("backend down")
        ):
            assert await sweeper.run_once() is None

    @pytest.mark.asyncio
    async def test_background_loop_sweeps_periodically(self, queue_client):
        sweeper = LeaseSweeper(queue_client, interval=0.01)
        with patch.object(queue_client, "sweep", new_callable=AsyncMock) as mock_sweep:
            sweeper.start()
            assert sweeper.running
            await asyncio.sleep(0.1)
            await sweeper.stop()

        assert mock_sweep.await_count >= 2
        assert not sweeper.running

    @pytest.mark.asyncio
    async def test_loop_continues_after_failure(self, queue_client):
        sweeper = LeaseSweeper(queue_client, interval=0.01)
        with patch.object(
            queue_client, "sweep",
            new_callable=AsyncMock,
            side_effect=RuntimeError("boom")
        ) as mock_sweep:
            sweeper.start()
            await asyncio.sleep(0.1)
            assert sweeper.running
            await sweeper.stop()

        assert mock_sweep.await_count >= 2

    @pytest.mark.asyncio
    async def test_stop_without_start(self, queue_client):
        await LeaseSweeper(queue_client).stop()
