from typing import Optional

from app.events.ledger import PAYMENT_STATUS_NOT_FOUND, PAYMENT_STATUS_QUERIED, append_event
from app.schemas.payment import PaymentStatusResponse
from app.services.payment_store import get_by_id


async def get_payment_status(purchase_id: str) -> Optional[PaymentStatusResponse]:
    """
    Returns the payment status of a purchase, recording the lookup in the audit
    stream (PaymentStatusQueried, or PaymentStatusNotFound when there is no such purchase).
    """
    purchase = await get_by_id(purchase_id)

    if purchase is None:
        await append_event(PAYMENT_STATUS_NOT_FOUND, purchase_id, {"purchaseId": purchase_id})
        return None

    await append_event(
        PAYMENT_STATUS_QUERIED,
        purchase_id,
        {"purchaseId": purchase_id, "status": purchase.status.value},
    )

    return PaymentStatusResponse(
        purchase_id=purchase.id,
        status=purchase.status,
        amount=purchase.amount,
        created_at=purchase.created_at,
        updated_at=purchase.updated_at,
    )
