from typing import Any, Dict, List, Optional

from app.models.domain_event import DomainEvent


# Event types recorded against a purchase
PAYMENT_PROCESSED = "PaymentProcessed"
PAYMENT_STATUS_QUERIED = "PaymentStatusQueried"
PAYMENT_STATUS_NOT_FOUND = "PaymentStatusNotFound"
PAYMENT_PURCHASE_NOT_FOUND = "PaymentPurchaseNotFound"


def _normalize_message_id(message_id: Optional[str]) -> Optional[str]:
    if message_id is None or not message_id.strip():
        return None
    return message_id


async def next_sequence(aggregate_id: str, conn: Any = None) -> int:
    """Returns the next position in the aggregate's event stream (1 for a new stream)."""
    last = await DomainEvent.filter(aggregate_id=aggregate_id).using_db(conn).order_by("-sequence").first()
    return last.sequence + 1 if last else 1


async def append_event(
    event_type: str,
    aggregate_id: str,
    data: Dict[str, Any],
    source_message_id: Optional[str] = None,
    conn: Any = None,
) -> DomainEvent:
    """
    Appends one event to the aggregate's audit stream.

    Passing 'conn' makes the append part of the caller's transaction. A second event
    with the same non-empty source_message_id violates the unique constraint and raises
    tortoise.exceptions.IntegrityError.
    """
    sequence = await next_sequence(aggregate_id, conn)
    return await DomainEvent.create(
        aggregate_id=aggregate_id,
        type=event_type,
        sequence=sequence,
        data=data,
        source_message_id=_normalize_message_id(source_message_id),
        using_db=conn,
    )


async def exists_by_source_message_id(message_id: Optional[str]) -> bool:
    """Idempotency gate: has an event already been recorded for this inbound message?"""
    normalized = _normalize_message_id(message_id)
    if normalized is None:
        return False
    return await DomainEvent.filter(source_message_id=normalized).exists()


async def list_events(aggregate_id: str) -> List[DomainEvent]:
    return await DomainEvent.filter(aggregate_id=aggregate_id).order_by("sequence")
