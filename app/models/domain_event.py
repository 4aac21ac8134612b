from tortoise import fields, models
import uuid


class DomainEvent(models.Model):
    """
    Append-only audit stream, one row per recorded fact about an aggregate.
    Also the source of truth for consumer idempotency: the unique constraint on
    source_message_id allows at most one event per inbound queue message
    (NULL values are not compared, so events without a source message are unconstrained).
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    aggregate_id = fields.CharField(max_length=64)
    type = fields.CharField(max_length=128) # e.g., 'PaymentProcessed'
    timestamp = fields.DatetimeField(auto_now_add=True)
    sequence = fields.IntField(default=1)
    data = fields.JSONField(default=dict)
    source_message_id = fields.CharField(max_length=128, null=True, unique=True)

    class Meta:
        table = "events"
        indexes = [
            ("aggregate_id", "sequence"),  # Per-aggregate stream reads
        ]
