import asyncio
import logging
import os
import socket
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.core.config import (
    OUTBOX_BATCH_SIZE,
    OUTBOX_ERROR_BACKOFF_SECONDS,
    OUTBOX_IDLE_INTERVAL_SECONDS,
    OUTBOX_UNCONFIGURED_RETRY_SECONDS,
)
from app.core.db import close_db, init_db
from app.core.runner import run_until_signalled
from app.events.outbox_store import compute_backoff_seconds, dequeue_due_batch, mark_failed, mark_published
from app.messaging.sqs_client import create_queue_client
from app.models.outbox import OutboxMessage

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("payments.outbox_publisher")

UNCONFIGURED_ERROR = "SQS client not configured (missing SQS_SERVICE_URL or AWS_REGION)."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_owner() -> str:
    """Identifies this publisher instance when claiming outbox rows."""
    return f"{socket.gethostname()}-{os.getpid()}-{uuid.uuid4().hex[:8]}"


async def publish_message(queue, message: OutboxMessage, now: Optional[datetime] = None) -> bool:
    """
    Sends one outbox row to its destination queue and records the outcome.
    Returns True when the row reached its terminal published state. Outcome
    timestamps are taken from 'now' (the current time when omitted).
    """
    now = now or _utcnow()
    if queue is None:
        await mark_failed(message, UNCONFIGURED_ERROR, now + timedelta(seconds=OUTBOX_UNCONFIGURED_RETRY_SECONDS))
        log.warning(f"Outbox message {message.event_id} not sent: {UNCONFIGURED_ERROR}")
        return False

    try:
        external_id = await queue.send_message(message.destination, message.body)
        await mark_published(message, external_id, now)
        log.info(f"Published {message.event_type} (event {message.event_id}) as SQS message {external_id}.")
        return True
    except Exception as e:
        delay = compute_backoff_seconds(message.attempts)
        await mark_failed(message, str(e), now + timedelta(seconds=delay))
        log.error(f"Failed to publish event {message.event_id} (attempt {message.attempts}), retrying in {delay}s: {e}")
        return False


async def publish_due_messages(
    queue,
    now: Optional[datetime] = None,
    owner: Optional[str] = None,
    limit: int = OUTBOX_BATCH_SIZE,
) -> int:
    """
    Fetches the oldest due outbox rows and attempts to publish each one.
    Returns the number of rows fetched.
    """
    now = now or _utcnow()
    batch = await dequeue_due_batch(limit, now, owner=owner)
    if not batch:
        return 0

    for message in batch:
        try:
            await publish_message(queue, message, now)
        except Exception as e:
            # Bookkeeping failed; the row stays due and is retried on a later pass
            log.error(f"Could not update outbox message {message.event_id}: {e}")
    return len(batch)


async def run_outbox_publisher(
    queue,
    owner: Optional[str] = None,
    idle_interval_seconds: float = OUTBOX_IDLE_INTERVAL_SECONDS,
    error_backoff_seconds: float = OUTBOX_ERROR_BACKOFF_SECONDS,
) -> None:
    """Main loop for the publisher. Runs until the task is cancelled."""
    owner = owner or default_owner()
    log.info(f"--- Outbox Publisher Started ({owner}) ---")
    try:
        while True:
            try:
                fetched = await publish_due_messages(queue, owner=owner)
                if fetched == 0:
                    await asyncio.sleep(idle_interval_seconds)
            except Exception as e:
                log.error(f"Outbox publisher encountered an error: {e}.")
                await asyncio.sleep(error_backoff_seconds)
    finally:
        log.info("Outbox publisher stopped.")


async def start_outbox_publisher():
    await init_db()
    try:
        await run_until_signalled(run_outbox_publisher(create_queue_client()))
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(start_outbox_publisher())
