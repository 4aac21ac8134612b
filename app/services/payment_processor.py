import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from app.core import config
from app.core.context import get_correlation_id
from app.events.ledger import PAYMENT_PROCESSED, PAYMENT_PURCHASE_NOT_FOUND, append_event, exists_by_source_message_id
from app.events.outbox_store import create_outbox_message
from app.models.purchase import PaymentStatus
from app.schemas.events import IntegrationEventEnvelope
from app.schemas.payment import ParsedPurchase, parse_purchase_message
from app.services.payment_store import update_status

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("payments.processor")


class ProcessingResult(str, Enum):
    PROCESSED = "PROCESSED"
    DUPLICATE = "DUPLICATE"  # Message id already recorded in the ledger
    INVALID = "INVALID"  # Body is neither an envelope nor a legacy purchase message
    NOT_FOUND = "NOT_FOUND"  # Referenced purchase does not exist


@dataclass(frozen=True)
class EnqueueResult:
    enqueued: bool
    outbox_message_id: Optional[UUID] = None
    error: Optional[str] = None


async def enqueue_payment_processed(
    purchase: ParsedPurchase,
    status: PaymentStatus,
    destination: Optional[str],
) -> EnqueueResult:
    """
    Best-effort: writes the PaymentProcessed integration event to the outbox.
    Never raises; the caller only logs the outcome.
    """
    if not destination:
        return EnqueueResult(enqueued=False, error="Events queue URL not configured.")
    try:
        envelope = IntegrationEventEnvelope(
            type=PAYMENT_PROCESSED,
            source=config.SOURCE_SERVICE,
            aggregate_id=purchase.purchase_id,
            correlation_id=purchase.correlation_id or get_correlation_id(),
            causation_id=purchase.causation_id,
            data={
                "purchaseId": purchase.purchase_id,
                "userId": purchase.user_id,
                "amount": purchase.amount,
                "status": status.value,
            },
        )
        message = await create_outbox_message(envelope, destination)
        return EnqueueResult(enqueued=True, outbox_message_id=message.id)
    except Exception as e:
        return EnqueueResult(enqueued=False, error=str(e))


async def process_message(
    message_id: Optional[str],
    body: Optional[str],
    events_queue_url: Optional[str] = None,
) -> ProcessingResult:
    """
    Idempotent handler for an inbound purchase message.

    Marks the purchase PAID and records a PaymentProcessed event carrying the
    inbound message id, both in one transaction. The ledger lookup up front makes
    redelivery a no-op; the unique constraint on source_message_id covers two
    consumers racing on the same message. A purchase that does not exist is recorded
    as a PaymentPurchaseNotFound audit event under the same message id and reported
    as NOT_FOUND. Malformed bodies are reported as INVALID (not raised) so the
    consumer still acknowledges them. Infrastructure errors propagate so the
    message is redelivered.
    """
    # Idempotency Check
    if message_id and await exists_by_source_message_id(message_id):
        log.info(f"Idempotency: Message {message_id} already processed.")
        return ProcessingResult.DUPLICATE

    purchase = parse_purchase_message(body)
    if purchase is None:
        log.warning(f"Discarding unprocessable message {message_id}: no valid purchaseId/userId.")
        return ProcessingResult.INVALID

    new_status = PaymentStatus.PAID
    now = datetime.now(timezone.utc)

    try:
        async with in_transaction() as conn:
            if not await update_status(purchase.purchase_id, new_status, now, conn=conn):
                # Audit the miss under the message id so redelivery is gated and traceable
                await append_event(
                    PAYMENT_PURCHASE_NOT_FOUND,
                    purchase.purchase_id,
                    {"userId": purchase.user_id, "amount": str(purchase.amount)},
                    source_message_id=message_id,
                    conn=conn,
                )
                log.warning(f"Purchase {purchase.purchase_id} not found for message {message_id}.")
                return ProcessingResult.NOT_FOUND

            await append_event(
                PAYMENT_PROCESSED,
                purchase.purchase_id,
                {
                    "userId": purchase.user_id,
                    "amount": str(purchase.amount),
                    "status": new_status.value,
                },
                source_message_id=message_id,
                conn=conn,
            )
    except IntegrityError:
        # Another consumer recorded this message first; our transaction was rolled back
        log.info(f"Idempotency: Message {message_id} recorded concurrently, skipping.")
        return ProcessingResult.DUPLICATE

    log.info(f"Payment for purchase {purchase.purchase_id} moved to {new_status.value}.")

    destination = events_queue_url if events_queue_url is not None else config.PAYMENTS_EVENTS_QUEUE_URL
    result = await enqueue_payment_processed(purchase, new_status, destination)
    if result.enqueued:
        log.info(f"Outbox message {result.outbox_message_id} queued for purchase {purchase.purchase_id}.")
    else:
        log.error(f"Could not queue PaymentProcessed for purchase {purchase.purchase_id}: {result.error}")

    return ProcessingResult.PROCESSED
