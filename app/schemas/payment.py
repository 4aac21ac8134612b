import json
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from app.models.purchase import PaymentStatus

# Purchase and user identifiers are opaque tokens
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def is_valid_identifier(value: Any) -> bool:
    return isinstance(value, str) and IDENTIFIER_PATTERN.fullmatch(value) is not None


def _aliases(camel: str, pascal: str, snake: str) -> AliasChoices:
    return AliasChoices(camel, pascal, snake)


class PurchaseMessage(BaseModel):
    """Legacy flat payload published by the purchase flow: {purchaseId, userId, amount}."""
    purchase_id: Optional[str] = Field(None, validation_alias=_aliases("purchaseId", "PurchaseId", "purchase_id"))
    user_id: Optional[str] = Field(None, validation_alias=_aliases("userId", "UserId", "user_id"))
    amount: Decimal = Field(Decimal("0"), validation_alias=AliasChoices("amount", "Amount"))


class PaymentInitiatedData(BaseModel):
    """The `data` section of an enveloped purchase event. All three properties must be present."""
    purchase_id: Optional[str] = Field(validation_alias=_aliases("purchaseId", "PurchaseId", "purchase_id"))
    user_id: Optional[str] = Field(validation_alias=_aliases("userId", "UserId", "user_id"))
    amount: Any = Field(validation_alias=AliasChoices("amount", "Amount"))

    @field_validator("amount")
    @classmethod
    def numeric_amount(cls, value: Any) -> Decimal:
        # Only numeric literals carry an amount in the envelope shape
        if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
            return Decimal("0")
        return Decimal(value)


class PaymentEnvelope(BaseModel):
    """Generic integration event envelope carrying a purchase: {type, data: {...}}."""
    event_id: Optional[str] = Field(None, validation_alias=_aliases("eventId", "EventId", "event_id"))
    type: Optional[str] = Field(None, validation_alias=AliasChoices("type", "Type"))
    correlation_id: Optional[str] = Field(
        None, validation_alias=_aliases("correlationId", "CorrelationId", "correlation_id")
    )
    data: PaymentInitiatedData = Field(validation_alias=AliasChoices("data", "Data"))


@dataclass(frozen=True)
class ParsedPurchase:
    purchase_id: str
    user_id: str
    amount: Decimal
    correlation_id: Optional[str] = None
    causation_id: Optional[str] = None


def _parse_envelope(raw: dict) -> Optional[ParsedPurchase]:
    try:
        envelope = PaymentEnvelope.model_validate(raw)
    except ValidationError:
        return None
    data = envelope.data
    if not (is_valid_identifier(data.purchase_id) and is_valid_identifier(data.user_id)):
        return None
    return ParsedPurchase(
        purchase_id=data.purchase_id,
        user_id=data.user_id,
        amount=data.amount,
        correlation_id=envelope.correlation_id or None,
        causation_id=envelope.event_id or None,
    )


def _parse_legacy(raw: dict) -> Optional[ParsedPurchase]:
    try:
        message = PurchaseMessage.model_validate(raw)
    except ValidationError:
        return None
    if not (is_valid_identifier(message.purchase_id) and is_valid_identifier(message.user_id)):
        return None
    return ParsedPurchase(purchase_id=message.purchase_id, user_id=message.user_id, amount=message.amount)


def parse_purchase_message(body: Optional[str]) -> Optional[ParsedPurchase]:
    """
    Parses an inbound purchase message. The envelope shape is tried first, then the
    legacy flat shape. Returns None when neither yields valid purchase/user identifiers.
    JSON numbers are decoded as Decimal so amounts never pass through float.
    """
    if not body or not body.strip():
        return None
    try:
        raw = json.loads(body, parse_float=Decimal)
    except (TypeError, ValueError):
        return None
    if not isinstance(raw, dict):
        return None
    return _parse_envelope(raw) or _parse_legacy(raw)


class PaymentStatusResponse(BaseModel):
    """Schema for the payment status of a purchase."""
    purchase_id: str
    status: PaymentStatus
    amount: Decimal
    created_at: datetime
    updated_at: Optional[datetime] = None


class LegacyPaymentStatusResponse(BaseModel):
    """Simplified status payload served on the legacy endpoint."""
    purchaseId: str
    status: PaymentStatus
