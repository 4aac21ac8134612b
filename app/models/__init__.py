# app/models/__init__.py
from .domain_event import DomainEvent
from .outbox import OutboxMessage
from .purchase import PaymentStatus, Purchase

# Export all models
__all__ = [
    "DomainEvent",
    "OutboxMessage",
    "PaymentStatus",
    "Purchase",
]
