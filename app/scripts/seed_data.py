# scripts/seed_data.py
import asyncio
import json
from decimal import Decimal
from app.core.db import init_db, close_db
from app.models.purchase import PaymentStatus, Purchase

DEMO_PURCHASES = [
    {"id": "P1", "user_id": "U1", "game_id": "G1", "amount": Decimal("59.90")},
    {"id": "P2", "user_id": "U1", "game_id": "G2", "amount": Decimal("149.00")},
    {"id": "P3", "user_id": "U2", "game_id": "G1", "amount": Decimal("59.90")},
]

async def seed():
    for data in DEMO_PURCHASES:
        purchase, created = await Purchase.get_or_create(
            id=data["id"],
            defaults={"user_id": data["user_id"], "game_id": data["game_id"], "amount": data["amount"]},
        )
        # Reset to PENDING so the demo can be replayed (idempotent)
        purchase.status = PaymentStatus.PENDING
        purchase.updated_at = None
        await purchase.save()
        print("Purchase:", purchase.id, "created" if created else "reset")

    # Body to send to the payments queue for P1 (legacy flat shape)
    print("Sample message:", json.dumps({"purchaseId": "P1", "userId": "U1", "amount": 59.90}))

async def main():
    await init_db()
    await seed()
    await close_db()

if __name__ == "__main__":
    asyncio.run(main())
