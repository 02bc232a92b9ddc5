"""
Module: inbox.py
Description: Consumer endpoints for draining the queue.

Lets downstream consumers inspect, lease and acknowledge queued
messages over HTTP, and list messages that were dead-lettered.
Delivery is at-least-once: a leased message that is not acknowledged
before its lease expires is delivered again.

Key Components:
- peek_inbox(): GET /inbox, read-only view of visible messages
- lease_message(): POST /inbox/lease, dequeue with a visibility lease
- acknowledge_message(): DELETE /inbox/{message_id}
- list_dead_letters(): GET /inbox/dead-letters

Dependencies: FastAPI, typing, models, message_queue, utils
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi import status as status_codes

from event_relay.errors import NotFound, StoreUnavailable
from event_relay.handlers.events import get_queue_client, store_unavailable_error
from event_relay.message_queue.client import QueueClient
from event_relay.models.response import DeadLetterResponse, MessageResponse
from event_relay.utils.logger import get_logger

router = APIRouter(prefix="/inbox", tags=["inbox"])
logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


def _check_limit(limit: int) -> None:
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise HTTPException(
            status_code=status_codes.HTTP_400_BAD_REQUEST,
            detail=f"Limit must be between 1 and {MAX_PAGE_SIZE}"
        )


@router.get("", response_model=List[MessageResponse])
async def peek_inbox(
    limit: int = 10,
    queue_client: QueueClient = Depends(get_queue_client)
) -> List[MessageResponse]:
    """
    Return visible messages without leasing them.

    Messages are ordered oldest first. Delivery counts and visibility
    are not changed.

    Example:
        GET /inbox?limit=5
    """
    _check_limit(limit)

    try:
        messages = await queue_client.peek(limit)
    except StoreUnavailable as e:
        logger.error("Failed to peek inbox", error=str(e))
        raise store_unavailable_error()

    logger.info("Inbox peeked", count=len(messages), limit=limit)
    return [MessageResponse.from_message(message) for message in messages]


@router.post(
    "/lease",
    response_model=MessageResponse,
    responses={204: {"description": "No visible message"}}
)
async def lease_message(
    lease_duration: Optional[float] = Query(default=None, ge=0, le=43200),
    queue_client: QueueClient = Depends(get_queue_client)
):
    """
    Lease the oldest visible message.

    The message stays hidden from other consumers for ``lease_duration``
    seconds (the configured default if omitted). Acknowledge it with
    DELETE /inbox/{message_id} once processed.

    Returns:
        200 with the leased message, or 204 if the queue has nothing visible
    """
    try:
        message = await queue_client.dequeue(lease_duration)
    except StoreUnavailable as e:
        logger.error("Failed to lease message", error=str(e))
        raise store_unavailable_error()

    if message is None:
        return Response(status_code=status_codes.HTTP_204_NO_CONTENT)

    return MessageResponse.from_message(message)


@router.delete("/{message_id}", status_code=status_codes.HTTP_204_NO_CONTENT)
async def acknowledge_message(
    message_id: str,
    queue_client: QueueClient = Depends(get_queue_client)
) -> Response:
    """
    Acknowledge a delivered message, removing it permanently.

    Raises:
        HTTPException: 404 if the message is unknown or already acknowledged
        HTTPException: 503 if the queue backend is unavailable
    """
    try:
        await queue_client.acknowledge(message_id)
    except NotFound as e:
        raise HTTPException(
            status_code=status_codes.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except StoreUnavailable as e:
        logger.error("Failed to acknowledge message", message_id=message_id, error=str(e))
        raise store_unavailable_error()

    return Response(status_code=status_codes.HTTP_204_NO_CONTENT)


@router.get("/dead-letters", response_model=List[DeadLetterResponse])
async def list_dead_letters(
    limit: int = 100,
    queue_client: QueueClient = Depends(get_queue_client)
) -> List[DeadLetterResponse]:
    """Return messages that exceeded the redelivery threshold, oldest first."""
    _check_limit(limit)

    try:
        records = await queue_client.list_dead_letters(limit)
    except StoreUnavailable as e:
        logger.error("Failed to list dead letters", error=str(e))
        raise store_unavailable_error()

    return [DeadLetterResponse.from_record(record) for record in records]
