from decimal import Decimal

import pytest

from app.events.ledger import PAYMENT_STATUS_NOT_FOUND, PAYMENT_STATUS_QUERIED, list_events
from app.models.purchase import PaymentStatus
from app.services.payment_status_service import get_payment_status
from app.services.payment_store import create_purchase


@pytest.mark.asyncio
async def test_status_lookup_is_audited(db):
    await create_purchase("P1", "U1", Decimal("59.90"))

    result = await get_payment_status("P1")

    assert result.purchase_id == "P1"
    assert result.status == PaymentStatus.PENDING
    assert result.amount == Decimal("59.90")
    assert result.updated_at is None

    [event] = await list_events("P1")
    assert event.type == PAYMENT_STATUS_QUERIED
    assert event.data == {"purchaseId": "P1", "status": "PENDING"}
    assert event.source_message_id is None


@pytest.mark.asyncio
async def test_missing_purchase_records_not_found(db):
    assert await get_payment_status("P404") is None

    [event] = await list_events("P404")
    assert event.type == PAYMENT_STATUS_NOT_FOUND
    assert event.data == {"purchaseId": "P404"}


@pytest.mark.asyncio
async def test_repeated_lookups_extend_the_stream(db):
    await create_purchase("P1", "U1", Decimal("10.00"))

    await get_payment_status("P1")
    await get_payment_status("P1")

    assert [e.sequence for e in await list_events("P1")] == [1, 2]
