from tortoise import fields, models
import uuid


class OutboxMessage(models.Model):
    """
    The Outbox table stores outbound integration events until they are sent.
    This is the core of the Transactional Outbox Pattern: the processor only inserts
    rows here, the publisher loop delivers them and keeps the retry bookkeeping.
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    event_id = fields.UUIDField(unique=True)
    event_type = fields.CharField(max_length=128) # e.g., 'PaymentProcessed'
    source_service = fields.CharField(max_length=64)
    aggregate_id = fields.CharField(max_length=64)
    correlation_id = fields.CharField(max_length=128, null=True)
    causation_id = fields.CharField(max_length=128, null=True)
    version = fields.IntField(default=1)
    destination = fields.CharField(max_length=512) # Target queue URL
    body = fields.TextField() # Serialized integration event envelope
    created_at = fields.DatetimeField(auto_now_add=True)
    published_at = fields.DatetimeField(null=True) # NULL means not yet delivered
    attempts = fields.IntField(default=0)
    next_attempt_at = fields.DatetimeField(null=True) # NULL means eligible immediately
    last_error = fields.TextField(null=True)
    last_external_message_id = fields.CharField(max_length=128, null=True)
    # Claim taken by a publisher instance before sending
    locked_by = fields.CharField(max_length=128, null=True)
    locked_until = fields.DatetimeField(null=True)

    class Meta:
        table = "outbox_messages"
        indexes = [
            ("published_at", "next_attempt_at"),  # Due-batch scans
            ("created_at",),
        ]
