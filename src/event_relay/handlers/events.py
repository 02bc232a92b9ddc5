"""
Module: events.py
Description: Event ingress handler.

Implements POST /events: accepts an opaque request body, bounds and
buffers it, and forwards it verbatim to the QueueClient. Each accepted
request makes exactly one enqueue attempt; retrying after a 503 is the
caller's job.

Key Components:
- publish_event(): Ingress endpoint
- get_queue_client(): Dependency injection for the QueueClient
- read_body(): Size-bounded body buffering

Dependencies: FastAPI
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi import status as status_codes

from event_relay.errors import PayloadTooLarge, StoreUnavailable, ValidationError
from event_relay.message_queue.client import QueueClient
from event_relay.models.response import EnqueueResponse
from event_relay.utils.logger import get_logger

router = APIRouter(prefix="/events", tags=["events"])
logger = get_logger(__name__)

RETRY_AFTER_SECONDS = "1"
# Named HTTP_413_REQUEST_ENTITY_TOO_LARGE in older Starlette releases
HTTP_413_CONTENT_TOO_LARGE = 413


def get_queue_client(request: Request) -> QueueClient:
    """
    Dependency to get the application's QueueClient.

    The client is created once by create_app() and stored on app.state.

    Returns:
        The shared QueueClient instance
    """
    return request.app.state.queue_client


async def read_body(request: Request, limit: int) -> bytes:
    """
    Buffer the request body, rejecting it as soon as it exceeds ``limit``.

    Raises:
        PayloadTooLarge: If the declared or actual size exceeds limit
        ValidationError: If Content-Length is malformed
    """
    declared = request.headers.get("content-length")
    if declared is not None:
        try:
            declared_size = int(declared)
        except ValueError:
            raise ValidationError("Content-Length must be an integer") from None
        if declared_size > limit:
            raise PayloadTooLarge(declared_size, limit)

    buffer = bytearray()
    async for chunk in request.stream():
        buffer.extend(chunk)
        if len(buffer) > limit:
            raise PayloadTooLarge(len(buffer), limit)
    return bytes(buffer)


def store_unavailable_error() -> HTTPException:
    return HTTPException(
        status_code=status_codes.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Queue backend unavailable, retry later",
        headers={"Retry-After": RETRY_AFTER_SECONDS}
    )


@router.post(
    "",
    status_code=status_codes.HTTP_200_OK,
    response_model=EnqueueResponse,
    responses={
        400: {"description": "Empty body or malformed Content-Length"},
        413: {"description": "Body exceeds the configured size limit"},
        503: {"description": "Queue backend unavailable"},
    }
)
async def publish_event(
    request: Request,
    queue_client: QueueClient = Depends(get_queue_client)
) -> EnqueueResponse:
    """
    Accept an event and enqueue its body.

    The body is not parsed; it is stored byte for byte.

    Raises:
        HTTPException: 400 if the body is empty
        HTTPException: 413 if the body is too large
        HTTPException: 503 if the queue backend is unavailable

    Example:
        POST /events
        {"data": "sample"}

        Response (200):
        {"message_id": "msg_0b6c4c2fd2a34b7e9d1e5f3a6c8b9d0e"}
    """
    try:
        body = await read_body(request, queue_client.max_body_size)
        if not body:
            raise ValidationError("Request body must not be empty")

        message_id = await queue_client.enqueue(body)

    except PayloadTooLarge as e:
        logger.warning(
            "Event rejected, body too large",
            size=e.size,
            limit=e.limit
        )
        raise HTTPException(
            status_code=HTTP_413_CONTENT_TOO_LARGE,
            detail=str(e)
        )

    except ValidationError as e:
        logger.warning("Event rejected", reason=str(e))
        raise HTTPException(
            status_code=status_codes.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    except StoreUnavailable as e:
        logger.error("Failed to enqueue event", error=str(e))
        raise store_unavailable_error()

    logger.info(
        "Event accepted",
        message_id=message_id,
        size=len(body),
        content_type=request.headers.get("content-type")
    )
    return EnqueueResponse(message_id=message_id)
