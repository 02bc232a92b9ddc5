"""
Module: dynamodb.py
Description: DynamoDB queue backend.

Stores live messages in one table and dead letters in another, both
keyed by message_id. Provides synchronous create/put/get/delete/list
operations with structured logging; every boto3 failure is logged and
surfaced as StoreUnavailable.

Key Components:
- DynamoDBQueueStore: QueueStore over a DynamoDB table
- DynamoDBDeadLetterSink: Append-only DeadLetterSink over a DynamoDB table
- build_dynamodb_resource(): boto3 resource with bounded timeouts and no retries

Dependencies: boto3, botocore, tenacity, datetime, typing
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from boto3.dynamodb.types import Binary
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import RetryError, retry, retry_if_result, stop_after_delay, wait_fixed

from event_relay.errors import StoreUnavailable
from event_relay.models.message import DeadLetter, Message
from event_relay.utils.logger import get_logger

logger = get_logger(__name__)


def build_dynamodb_resource(
    region: str,
    endpoint_url: Optional[str] = None,
    profile_name: Optional[str] = None,
    timeout: float = 5.0
):
    """
    Create a DynamoDB service resource.

    Requests time out after ``timeout`` seconds and are attempted once;
    retrying is left to the caller.

    Args:
        region: AWS region name
        endpoint_url: Optional endpoint override (local DynamoDB, etc.)
        profile_name: Optional named credential profile
        timeout: Connect and read timeout in seconds

    Returns:
        boto3 DynamoDB ServiceResource
    """
    session = boto3.session.Session(profile_name=profile_name, region_name=region)
    config = Config(
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={"total_max_attempts": 1, "mode": "standard"}
    )
    return session.resource("dynamodb", endpoint_url=endpoint_url, config=config)


def _format_timestamp(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _message_to_item(message: Message) -> Dict[str, Any]:
    return {
        "message_id": message.message_id,
        "body": message.body,
        "enqueued_at": _format_timestamp(message.enqueued_at),
        "visible_at": _format_timestamp(message.visible_at),
        "dequeue_count": message.dequeue_count,
    }


def _item_to_message(item: Dict[str, Any]) -> Message:
    body = item["body"]
    if isinstance(body, Binary):
        body = body.value
    return Message(
        message_id=item["message_id"],
        body=bytes(body),
        enqueued_at=datetime.fromisoformat(item["enqueued_at"]),
        visible_at=datetime.fromisoformat(item["visible_at"]),
        # Numbers come back as Decimal
        dequeue_count=int(item["dequeue_count"]),
    )


class _DynamoDBTable:
    """Shared table handling for the queue store and dead-letter sink."""

    def __init__(self, table_name: str, resource, activation_timeout: float = 60.0):
        """
        Args:
            table_name: Name of the DynamoDB table
            resource: boto3 DynamoDB ServiceResource
            activation_timeout: Seconds to wait for a new table to become ACTIVE

        Raises:
            ValueError: If table_name is empty or invalid
        """
        if not table_name or not isinstance(table_name, str):
            raise ValueError("table_name must be a non-empty string")

        self.table_name = table_name
        self.dynamodb = resource
        self.table = resource.Table(table_name)
        self.activation_timeout = activation_timeout

        logger.info(
            "DynamoDB table client initialized",
            table_name=table_name
        )

    @contextmanager
    def _translate_errors(self, action: str, **context) -> Iterator[None]:
        try:
            yield
        except ClientError as e:
            error_code = e.response['Error']['Code']
            logger.error(
                f"Failed to {action} in DynamoDB",
                table_name=self.table_name,
                error_code=error_code,
                error_message=e.response['Error']['Message'],
                **context
            )
            raise StoreUnavailable(f"DynamoDB {action} failed: {error_code}") from e
        except BotoCoreError as e:
            logger.error(
                f"Unexpected error trying to {action} in DynamoDB",
                table_name=self.table_name,
                error=str(e),
                error_type=type(e).__name__,
                **context
            )
            raise StoreUnavailable(f"DynamoDB {action} failed: {e}") from e

    def create(self) -> None:
        """Create the table if missing and wait until it is ACTIVE."""
        with self._translate_errors("create table"):
            try:
                self.dynamodb.meta.client.describe_table(TableName=self.table_name)
                logger.info("DynamoDB table already exists", table_name=self.table_name)
            except ClientError as e:
                if e.response['Error']['Code'] != 'ResourceNotFoundException':
                    raise
                self.dynamodb.create_table(
                    TableName=self.table_name,
                    KeySchema=[{'AttributeName': 'message_id', 'KeyType': 'HASH'}],
                    AttributeDefinitions=[{'AttributeName': 'message_id', 'AttributeType': 'S'}],
                    BillingMode='PAY_PER_REQUEST'
                )
                logger.info("DynamoDB table created", table_name=self.table_name)

            waiter = retry(
                stop=stop_after_delay(self.activation_timeout),
                wait=wait_fixed(1),
                retry=retry_if_result(lambda status: status != 'ACTIVE')
            )
            try:
                waiter(self._table_status)()
            except RetryError as e:
                raise StoreUnavailable(
                    f"DynamoDB table {self.table_name} did not become ACTIVE"
                ) from e

    def _table_status(self) -> str:
        self.table.reload()
        logger.debug(
            "DynamoDB table status",
            table_name=self.table_name,
            status=self.table.table_status
        )
        return self.table.table_status

    def _scan_all(self, **kwargs) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        kwargs['ConsistentRead'] = True
        while True:
            response = self.table.scan(**kwargs)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            kwargs['ExclusiveStartKey'] = last_key


class DynamoDBQueueStore(_DynamoDBTable):
    """
    QueueStore over a DynamoDB table.

    Example:
        >>> store = DynamoDBQueueStore("event-relay-queue", build_dynamodb_resource("us-east-1"))
        >>> store.create()
        >>> store.put(message)
        >>> store.get(message.message_id)
    """

    def put(self, message: Message) -> None:
        with self._translate_errors("store message", message_id=message.message_id):
            self.table.put_item(Item=_message_to_item(message))

        logger.debug(
            "Message stored in DynamoDB",
            message_id=message.message_id,
            dequeue_count=message.dequeue_count,
            table_name=self.table_name
        )

    def get(self, message_id: str) -> Optional[Message]:
        with self._translate_errors("get message", message_id=message_id):
            response = self.table.get_item(
                Key={'message_id': message_id},
                ConsistentRead=True
            )

        if 'Item' not in response:
            return None
        return _item_to_message(response['Item'])

    def delete(self, message_id: str) -> bool:
        with self._translate_errors("delete message", message_id=message_id):
            response = self.table.delete_item(
                Key={'message_id': message_id},
                ReturnValues='ALL_OLD'
            )

        deleted = 'Attributes' in response
        logger.debug(
            "Message delete processed in DynamoDB",
            message_id=message_id,
            deleted=deleted,
            table_name=self.table_name
        )
        return deleted

    def list_messages(self, visible_before: Optional[datetime] = None) -> List[Message]:
        kwargs: Dict[str, Any] = {}
        if visible_before is not None:
            kwargs['FilterExpression'] = Attr('visible_at').lte(
                _format_timestamp(visible_before)
            )

        with self._translate_errors("list messages"):
            items = self._scan_all(**kwargs)

        # Scans have no guaranteed order
        messages = [_item_to_message(item) for item in items]
        return sorted(messages, key=lambda m: m.sort_key)


class DynamoDBDeadLetterSink(_DynamoDBTable):
    """Append-only DeadLetterSink over a DynamoDB table."""

    def append(self, record: DeadLetter) -> None:
        item = _message_to_item(record.message)
        item['reason'] = record.reason
        item['dead_lettered_at'] = _format_timestamp(record.dead_lettered_at)

        message_id = record.message.message_id
        with self._translate_errors("append dead letter", message_id=message_id):
            try:
                self.table.put_item(
                    Item=item,
                    ConditionExpression='attribute_not_exists(message_id)'
                )
            except ClientError as e:
                if e.response['Error']['Code'] != 'ConditionalCheckFailedException':
                    raise
                # Already recorded by an earlier, interrupted reroute
                logger.warning(
                    "Dead letter already recorded",
                    message_id=message_id,
                    table_name=self.table_name
                )
                return

        logger.info(
            "Dead letter stored in DynamoDB",
            message_id=message_id,
            reason=record.reason,
            table_name=self.table_name
        )

    def list_records(self, limit: Optional[int] = None) -> List[DeadLetter]:
        with self._translate_errors("list dead letters"):
            items = self._scan_all()

        records = [
            DeadLetter(
                message=_item_to_message(item),
                reason=item['reason'],
                dead_lettered_at=datetime.fromisoformat(item['dead_lettered_at'])
            )
            for item in items
        ]
        records.sort(key=lambda r: (r.dead_lettered_at, r.message.message_id))
        return records if limit is None else records[:limit]
