from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from app.models.purchase import PaymentStatus, Purchase


async def get_by_id(purchase_id: str, conn: Any = None) -> Optional[Purchase]:
    """Fetches the current payment state of a purchase."""
    return await Purchase.get_or_none(id=purchase_id).using_db(conn)


async def update_status(
    purchase_id: str,
    new_status: PaymentStatus,
    updated_at: datetime,
    conn: Any = None,
) -> bool:
    """
    Transitions a purchase to 'new_status', stamping updated_at.
    Returns False when no purchase with that id exists.
    """
    updated = await Purchase.filter(id=purchase_id).using_db(conn).update(
        status=new_status, updated_at=updated_at
    )
    return updated > 0


async def create_purchase(
    purchase_id: str,
    user_id: str,
    amount: Decimal,
    game_id: Optional[str] = None,
    status: PaymentStatus = PaymentStatus.PENDING,
) -> Purchase:
    """Creates a purchase row. Purchases normally come from the upstream purchase flow."""
    return await Purchase.create(
        id=purchase_id, user_id=user_id, game_id=game_id, amount=amount, status=status
    )
