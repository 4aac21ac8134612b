import logging
from datetime import datetime, timedelta
from typing import List, Optional

from tortoise.expressions import F, Q

from app.core.config import OUTBOX_LEASE_SECONDS
from app.models.outbox import OutboxMessage
from app.schemas.events import IntegrationEventEnvelope

log = logging.getLogger("payments.outbox_store")

MAX_BATCH_SIZE = 50
MAX_BACKOFF_SECONDS = 300
MAX_BACKOFF_EXPONENT = 8


def compute_backoff_seconds(attempts: int) -> int:
    """Exponential retry delay: min(300, 2 ** clamp(attempts, 0, 8)) seconds, so at most 256."""
    exponent = min(max(attempts, 0), MAX_BACKOFF_EXPONENT)
    return min(MAX_BACKOFF_SECONDS, 2 ** exponent)


async def enqueue(message: OutboxMessage, conn=None) -> OutboxMessage:
    """Persists an unpublished outbox row. Passing 'conn' ties it to the caller's transaction."""
    message.published_at = None
    message.attempts = 0
    await message.save(using_db=conn, force_create=True)
    return message


async def create_outbox_message(envelope: IntegrationEventEnvelope, destination: str, conn=None) -> OutboxMessage:
    """Builds the outbox row for an integration event envelope and enqueues it."""
    message = OutboxMessage(
        event_id=envelope.event_id,
        event_type=envelope.type,
        source_service=envelope.source,
        aggregate_id=envelope.aggregate_id,
        correlation_id=envelope.correlation_id,
        causation_id=envelope.causation_id,
        version=envelope.version,
        destination=destination,
        body=envelope.to_json(),
    )
    return await enqueue(message, conn=conn)


def _due_filter(now: datetime) -> Q:
    eligible = Q(next_attempt_at__isnull=True) | Q(next_attempt_at__lte=now)
    unleased = Q(locked_until__isnull=True) | Q(locked_until__lte=now)
    return Q(published_at__isnull=True) & eligible & unleased


async def dequeue_due_batch(
    limit: int,
    now: datetime,
    owner: Optional[str] = None,
    lease_seconds: int = OUTBOX_LEASE_SECONDS,
) -> List[OutboxMessage]:
    """
    Returns up to 'limit' (clamped to 1..50) unpublished rows that are due at 'now',
    oldest first. When 'owner' is given each row is claimed with a conditional update
    and only the rows this owner won are returned, so concurrent publishers never
    send the same row twice within a lease window.
    """
    limit = min(max(limit, 1), MAX_BATCH_SIZE)
    candidates = await OutboxMessage.filter(_due_filter(now)).order_by("created_at").limit(limit)
    if owner is None:
        return list(candidates)

    locked_until = now + timedelta(seconds=lease_seconds)
    claimed = []
    for message in candidates:
        updated = await OutboxMessage.filter(Q(id=message.id) & _due_filter(now)).update(
            locked_by=owner, locked_until=locked_until
        )
        if updated:
            message.locked_by = owner
            message.locked_until = locked_until
            claimed.append(message)
        else:
            log.debug(f"Outbox message {message.id} claimed by another publisher.")
    return claimed


async def mark_published(message: OutboxMessage, external_id: Optional[str], published_at: datetime) -> None:
    """Terminal transition: the row is never returned by dequeue_due_batch again."""
    await OutboxMessage.filter(id=message.id, published_at__isnull=True).update(
        published_at=published_at,
        last_external_message_id=external_id,
        last_error=None,
        next_attempt_at=None,
        locked_by=None,
        locked_until=None,
    )
    message.published_at = published_at
    message.last_external_message_id = external_id
    message.last_error = None
    message.next_attempt_at = None
    message.locked_by = None
    message.locked_until = None


async def mark_failed(message: OutboxMessage, error: str, next_attempt_at: datetime) -> None:
    """Records a failed delivery and schedules the next attempt. Published rows are left untouched."""
    await OutboxMessage.filter(id=message.id, published_at__isnull=True).update(
        attempts=F("attempts") + 1,
        last_error=error,
        next_attempt_at=next_attempt_at,
        locked_by=None,
        locked_until=None,
    )
    message.attempts += 1
    message.last_error = error
    message.next_attempt_at = next_attempt_at
    message.locked_by = None
    message.locked_until = None
