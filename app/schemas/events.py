import json
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IntegrationEventEnvelope(BaseModel):
    """
    Standard envelope for integration events exchanged between services over SQS.
    Serialized with camelCase keys: {eventId, type, occurredAt, source, aggregateId,
    correlationId, causationId, version, data}.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    type: str
    occurred_at: datetime = Field(default_factory=_utcnow)
    source: str
    aggregate_id: str
    correlation_id: Optional[str] = None
    causation_id: Optional[str] = None
    version: int = 1
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> str:
        """
        Compact JSON body. Decimal values in 'data' are written as bare JSON numbers
        using their exact decimal text, so readers decoding numbers as Decimal get
        the same value back.
        """
        numbers: Dict[str, str] = {}

        def _encode_decimal(value: Any) -> str:
            if not isinstance(value, Decimal):
                raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
            if not value.is_finite():
                raise ValueError(f"Cannot serialize non-finite amount {value}")
            placeholder = f"__decimal_{uuid.uuid4().hex}__"
            numbers[placeholder] = str(value)
            return placeholder

        payload = self.model_dump(by_alias=True, mode="json", exclude={"data"})
        payload["data"] = self.data
        body = json.dumps(payload, separators=(",", ":"), default=_encode_decimal)
        for placeholder, text in numbers.items():
            body = body.replace(f'"{placeholder}"', text)
        return body
