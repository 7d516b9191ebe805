"""
expense-lane contracts — canonical models shared by every pipeline stage.

All stages produce and consume these Pydantic v2 models.  Field names are
snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Decimal internally, plain JSON number on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ---------------------------------------------------------------------------
# Receipt
# ---------------------------------------------------------------------------

class ReceiptSource(str, Enum):
    CHANNEL_MESSAGE = "channel-message"
    EMAIL = "email"
    WEBHOOK = "webhook"
    MANUAL = "manual"


class Receipt(WireModel):
    """A single payment event, immutable once validated."""
    model_config = ConfigDict(frozen=True)

    order_id: str = Field(..., min_length=1)
    amount: Money = Field(..., gt=0, description="Strictly positive, major units")
    currency: str = "USD"
    payer: str = Field(..., min_length=1)
    description: Optional[str] = None
    timestamp: Optional[str] = Field(None, description="ISO-8601")
    source: ReceiptSource = ReceiptSource.CHANNEL_MESSAGE


class SampleReceipt(Receipt):
    """Canned receipt offered by the demo picker."""
    id: str
    name: str


def validate_receipt(data: Any) -> Receipt:
    """Validate an untrusted payload; raises ``pydantic.ValidationError``."""
    return Receipt.model_validate(data)


# ---------------------------------------------------------------------------
# Integration outcomes
# ---------------------------------------------------------------------------

class VerificationStatus(str, Enum):
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"


class VerificationResult(WireModel):
    verified: bool
    order_id: str
    amount: Money
    status: VerificationStatus
    transaction_id: Optional[str] = None
    message: Optional[str] = None
    verified_at: str = Field(default_factory=utc_now_iso)


class TicketRecord(WireModel):
    key: str
    id: str
    url: str


class DocumentRecord(WireModel):
    id: str
    url: str


class ChannelMessage(BaseModel):
    """One entry of a chat channel history (Slack wire names)."""

    type: str = "message"
    user: Optional[str] = None
    text: Optional[str] = None
    ts: str
    thread_ts: Optional[str] = None


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class RunOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_channel: Optional[str] = None
    fixture_receipt: Optional[Receipt] = None
    dry_run: bool = False


class OrchestrationResult(WireModel):
    """Terminal artifact of one pipeline run.

    ``receipt`` and ``verification`` stay ``None`` when acquisition failed;
    ``success`` is true iff no step recorded an error.
    """
    receipt: Optional[Receipt] = None
    verification: Optional[VerificationResult] = None
    ticket: Optional[TicketRecord] = None
    document: Optional[DocumentRecord] = None
    success: bool = False
    errors: list[str] = Field(default_factory=list)
