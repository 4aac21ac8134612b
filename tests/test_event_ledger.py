import pytest
from tortoise.exceptions import IntegrityError

from app.events.ledger import (
    PAYMENT_PROCESSED,
    PAYMENT_STATUS_QUERIED,
    append_event,
    exists_by_source_message_id,
    list_events,
)
from app.models.domain_event import DomainEvent


@pytest.mark.asyncio
async def test_append_and_lookup_by_source_message_id(db):
    await append_event(PAYMENT_PROCESSED, "P1", {"status": "PAID"}, source_message_id="m1")

    assert await exists_by_source_message_id("m1") is True
    assert await exists_by_source_message_id("m2") is False


@pytest.mark.asyncio
async def test_empty_message_id_is_never_a_duplicate(db):
    await append_event(PAYMENT_STATUS_QUERIED, "P1", {}, source_message_id="")
    await append_event(PAYMENT_STATUS_QUERIED, "P1", {}, source_message_id="   ")

    assert await exists_by_source_message_id("") is False
    assert await exists_by_source_message_id(None) is False
    assert await DomainEvent.filter(source_message_id__isnull=True).count() == 2


@pytest.mark.asyncio
async def test_source_message_id_is_unique(db):
    await append_event(PAYMENT_PROCESSED, "P1", {}, source_message_id="m1")

    with pytest.raises(IntegrityError):
        await append_event(PAYMENT_PROCESSED, "P1", {}, source_message_id="m1")

    assert await DomainEvent.filter(source_message_id="m1").count() == 1


@pytest.mark.asyncio
async def test_sequence_is_monotonic_per_aggregate(db):
    await append_event(PAYMENT_STATUS_QUERIED, "P1", {})
    await append_event(PAYMENT_PROCESSED, "P1", {}, source_message_id="m1")
    await append_event(PAYMENT_STATUS_QUERIED, "P2", {})

    p1_events = await list_events("P1")
    p2_events = await list_events("P2")

    assert [e.sequence for e in p1_events] == [1, 2]
    assert [e.type for e in p1_events] == [PAYMENT_STATUS_QUERIED, PAYMENT_PROCESSED]
    assert [e.sequence for e in p2_events] == [1]
