"""
SQS queue broker adapter.
"""

import asyncio
import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from blobfs.errors import BrokerError
from blobfs.queue.base import QueueBroker
from blobfs.types.lock import QueueMessage

logger = logging.getLogger(__name__)


class SqsQueueBroker(QueueBroker):
    """QueueBroker over Amazon SQS."""

    def __init__(self, client: Any):
        """
        Args:
            client: A boto3 SQS client.
        """
        self._client = client

    async def _call(self, operation: str, method: str, **kwargs: Any) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(getattr(self._client, method), **kwargs)
        except ClientError as e:
            error = e.response.get("Error", {})
            logger.error(
                "SQS call failed",
                extra={"operation": operation, "code": error.get("Code"), "error": str(e)},
            )
            raise BrokerError(
                operation,
                error.get("Message", str(e)),
                code=error.get("Code"),
            ) from e
        except BotoCoreError as e:
            logger.error("SQS call failed", extra={"operation": operation, "error": str(e)})
            raise BrokerError(operation, str(e)) from e

    async def create_queue(
        self,
        name: str,
        fifo: bool = True,
        visibility_timeout: int | None = None,
    ) -> str:
        attributes: dict[str, str] = {}
        if fifo:
            attributes["FifoQueue"] = "true"
        if visibility_timeout is not None:
            attributes["VisibilityTimeout"] = str(visibility_timeout)

        response = await self._call(
            "create_queue", "create_queue", QueueName=name, Attributes=attributes
        )
        return response["QueueUrl"]

    async def enqueue(
        self,
        queue_url: str,
        body: str,
        group_id: str,
        dedup_token: str,
    ) -> None:
        await self._call(
            "enqueue",
            "send_message",
            QueueUrl=queue_url,
            MessageBody=body,
            MessageGroupId=group_id,
            MessageDeduplicationId=dedup_token,
        )

    async def receive(self, queue_url: str, wait_seconds: int = 0) -> QueueMessage | None:
        response = await self._call(
            "receive",
            "receive_message",
            QueueUrl=queue_url,
            MaxNumberOfMessages=1,
            WaitTimeSeconds=wait_seconds,
        )
        messages = response.get("Messages") or []
        if not messages:
            return None
        message = messages[0]
        return QueueMessage(
            body=message["Body"],
            receipt_handle=message["ReceiptHandle"],
            message_id=message.get("MessageId"),
        )

    async def change_visibility(
        self,
        queue_url: str,
        receipt_handle: str,
        timeout_seconds: int,
    ) -> None:
        await self._call(
            "change_visibility",
            "change_message_visibility",
            QueueUrl=queue_url,
            ReceiptHandle=receipt_handle,
            VisibilityTimeout=timeout_seconds,
        )

    async def delete(self, queue_url: str, receipt_handle: str) -> None:
        await self._call(
            "delete",
            "delete_message",
            QueueUrl=queue_url,
            ReceiptHandle=receipt_handle,
        )
