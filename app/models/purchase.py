from enum import Enum
from tortoise import fields, models


class PaymentStatus(str, Enum):
    PENDING = "PENDING"  # Created by the upstream purchase flow
    PAID = "PAID"


class Purchase(models.Model):
    """
    Current payment state of a purchase (the aggregate projection).
    Rows are created upstream and only ever transitioned by the payment processor.
    """
    id = fields.CharField(pk=True, max_length=64)
    user_id = fields.CharField(max_length=64)
    game_id = fields.CharField(max_length=64, null=True)
    amount = fields.DecimalField(max_digits=14, decimal_places=2)
    status = fields.CharEnumField(PaymentStatus, default=PaymentStatus.PENDING)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(null=True)

    class Meta:
        table = "purchases"
        indexes = [
            ("user_id",),   # User purchase history
            ("status",),    # Status-based filtering
        ]
