import logging
from fastapi import APIRouter, HTTPException
from app.schemas.payment import LegacyPaymentStatusResponse, is_valid_identifier
from app.schemas.response import SuccessResponse
from app.services.payment_status_service import get_payment_status

router = APIRouter()
legacy_router = APIRouter()
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("uvicorn")


@router.get("/{purchase_id}", response_model=SuccessResponse)
async def get_payment_status_endpoint(purchase_id: str):
    """Fetches the payment status of a purchase."""
    if not is_valid_identifier(purchase_id):
        raise HTTPException(status_code=400, detail="Invalid purchase id")

    try:
        result = await get_payment_status(purchase_id)
    except Exception as e:
        log.error(f"Error fetching payment status for {purchase_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch payment status.")

    if result is None:
        raise HTTPException(status_code=404, detail="Purchase not found")
    return SuccessResponse(data=result.model_dump(mode="json"))


@legacy_router.get("/payments/{purchase_id}", response_model=LegacyPaymentStatusResponse)
async def get_payment_status_legacy_endpoint(purchase_id: str):
    """Simplified status lookup kept for older clients."""
    if not is_valid_identifier(purchase_id):
        raise HTTPException(status_code=400, detail="Invalid purchase id")

    result = await get_payment_status(purchase_id)
    if result is None:
        raise HTTPException(status_code=404, detail="not found")
    return LegacyPaymentStatusResponse(purchaseId=purchase_id, status=result.status)
