import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, List, Optional

import boto3
from botocore.config import Config

from app.core import config

log = logging.getLogger("payments.sqs")

SQS_MAX_MESSAGES = 10
DEFAULT_EMULATOR_REGION = "us-east-1"


@dataclass(frozen=True)
class QueueMessage:
    message_id: str
    receipt_handle: str
    body: str


class SqsQueueClient:
    """
    Async facade over a boto3 SQS client.

    boto3 calls block, so each one runs in the default executor; awaiting callers can
    be cancelled while a long poll is still in flight.
    """

    def __init__(self, client: Any):
        self._client = client

    async def _call(self, operation, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(operation, **kwargs))

    async def receive_messages(
        self,
        queue_url: str,
        max_messages: int = SQS_MAX_MESSAGES,
        wait_time_seconds: int = 20,
        visibility_timeout: int = 60,
    ) -> List[QueueMessage]:
        response = await self._call(
            self._client.receive_message,
            QueueUrl=queue_url,
            MaxNumberOfMessages=min(max(max_messages, 1), SQS_MAX_MESSAGES),
            WaitTimeSeconds=wait_time_seconds,
            VisibilityTimeout=visibility_timeout,
        )
        return [
            QueueMessage(
                message_id=m["MessageId"],
                receipt_handle=m["ReceiptHandle"],
                body=m.get("Body", ""),
            )
            for m in response.get("Messages", [])
        ]

    async def delete_message(self, queue_url: str, receipt_handle: str) -> None:
        await self._call(self._client.delete_message, QueueUrl=queue_url, ReceiptHandle=receipt_handle)

    async def send_message(self, queue_url: str, body: str) -> str:
        """Sends 'body' to the queue and returns the SQS message id."""
        response = await self._call(self._client.send_message, QueueUrl=queue_url, MessageBody=body)
        return response["MessageId"]


def create_queue_client(
    service_url: Optional[str] = None,
    region: Optional[str] = None,
    access_key: Optional[str] = None,
    secret_key: Optional[str] = None,
) -> Optional[SqsQueueClient]:
    """
    Builds an SQS client from configuration. SQS_SERVICE_URL targets LocalStack or another
    emulator; otherwise AWS_REGION selects real AWS. Returns None when neither is set.
    Static keys are used when both are present, else boto3's default credential chain.
    """
    service_url = config.SQS_SERVICE_URL if service_url is None else service_url
    region = config.AWS_REGION if region is None else region
    access_key = config.AWS_ACCESS_KEY_ID if access_key is None else access_key
    secret_key = config.AWS_SECRET_ACCESS_KEY if secret_key is None else secret_key

    client_kwargs = {}
    if service_url:
        client_kwargs["endpoint_url"] = service_url
        client_kwargs["region_name"] = region or DEFAULT_EMULATOR_REGION
    elif region:
        client_kwargs["region_name"] = region
    else:
        log.warning("SQS client not configured (missing SQS_SERVICE_URL or AWS_REGION).")
        return None

    if access_key and access_key.strip() and secret_key and secret_key.strip():
        client_kwargs["aws_access_key_id"] = access_key
        client_kwargs["aws_secret_access_key"] = secret_key

    client = boto3.client(
        "sqs",
        config=Config(retries={"max_attempts": 3, "mode": "standard"}, read_timeout=30),
        **client_kwargs,
    )
    log.info(f"SQS client created (region={client_kwargs['region_name']}, endpoint={service_url or 'aws'}).")
    return SqsQueueClient(client)
