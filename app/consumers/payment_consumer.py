import asyncio
import logging
from typing import Awaitable, Callable, Optional

from app.core.config import (
    CONSUMER_ERROR_BACKOFF_SECONDS,
    CONSUMER_MAX_MESSAGES,
    CONSUMER_POLL_INTERVAL_MS,
    CONSUMER_VISIBILITY_TIMEOUT,
    CONSUMER_WAIT_TIME_SECONDS,
    PAYMENTS_QUEUE_URL,
)
from app.core.context import correlation_scope
from app.core.db import close_db, init_db
from app.core.runner import run_until_signalled
from app.messaging.sqs_client import QueueMessage, create_queue_client
from app.services.payment_processor import process_message

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("payments.consumer")

Processor = Callable[[str, str], Awaitable[object]]


async def handle_message(queue, queue_url: str, message: QueueMessage, processor: Optional[Processor] = None) -> bool:
    """
    Runs one message through the processor and deletes it from the queue on success.
    On failure the message is left undeleted so it becomes visible again after the
    visibility timeout.
    """
    processor = processor or process_message
    try:
        # The inbound message id starts the trace when the envelope carries no correlationId
        with correlation_scope(message.message_id):
            result = await processor(message.message_id, message.body)
        await queue.delete_message(queue_url, message.receipt_handle)
        log.info(f"Message {message.message_id} processed ({getattr(result, 'value', result)}).")
        return True
    except Exception as e:
        log.error(f"Error processing message {message.message_id}, leaving it for redelivery: {e}")
        return False


async def consume_batch(
    queue,
    queue_url: str,
    processor: Optional[Processor] = None,
    max_messages: int = CONSUMER_MAX_MESSAGES,
    wait_time_seconds: int = CONSUMER_WAIT_TIME_SECONDS,
    visibility_timeout: int = CONSUMER_VISIBILITY_TIMEOUT,
) -> int:
    """Long-polls once and handles every received message. Returns how many were received."""
    messages = await queue.receive_messages(
        queue_url,
        max_messages=max_messages,
        wait_time_seconds=wait_time_seconds,
        visibility_timeout=visibility_timeout,
    )
    for message in messages:
        await handle_message(queue, queue_url, message, processor)
    return len(messages)


async def run_payment_consumer(
    queue,
    queue_url: str,
    processor: Optional[Processor] = None,
    poll_interval_ms: int = CONSUMER_POLL_INTERVAL_MS,
    error_backoff_seconds: float = CONSUMER_ERROR_BACKOFF_SECONDS,
) -> None:
    """Main loop for the consumer service. Runs until the task is cancelled."""
    log.info(f"--- Payment Consumer listening on {queue_url} ---")
    try:
        while True:
            try:
                received = await consume_batch(queue, queue_url, processor)
            except Exception as e:
                log.error(f"Consumer loop error: {e}. Retrying in {error_backoff_seconds}s.")
                await asyncio.sleep(error_backoff_seconds)
                continue

            if received == 0:
                await asyncio.sleep(poll_interval_ms / 1000)
    finally:
        log.info("Payment consumer stopped.")


async def start_payment_consumer():
    if not PAYMENTS_QUEUE_URL:
        raise RuntimeError("Payments queue URL not configured (PAYMENTS_QUEUE_URL).")
    queue = create_queue_client()
    if queue is None:
        raise RuntimeError("SQS client not configured (missing SQS_SERVICE_URL or AWS_REGION).")

    await init_db()
    try:
        await run_until_signalled(run_payment_consumer(queue, PAYMENTS_QUEUE_URL))
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(start_payment_consumer())
