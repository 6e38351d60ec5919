"""
Canonical schemas for the receipt verification pipeline.

Pipeline stages pass these between each other; the API layer serializes the
response envelopes with camelCase aliases.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

PayloadKind = Literal["pdf", "html", "json"]

# Field name -> raw string value, as recovered by a provider's rules.
ProviderFields = dict[str, str]


# ---------------------------------------------------------------------------
# Pipeline primitives
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawReceiptPayload:
    """Bytes exactly as a provider served them, plus what kind they are."""
    content: bytes
    kind: PayloadKind
    content_type: str = ""
    source_url: str = ""

    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class ReceiptLocator:
    """Everything a provider needs to find one receipt."""
    reference: str
    account_suffix: Optional[str] = None
    phone_number: Optional[str] = None
    bearer_token: Optional[str] = field(default=None, repr=False)


class ApiKeyPrincipal(BaseModel):
    """The authenticated caller, attached to records as ``verified_by``."""
    id: str
    name: str


# ---------------------------------------------------------------------------
# Canonical receipt
# ---------------------------------------------------------------------------

class CanonicalReceipt(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool = True
    payer: Optional[str] = None
    payer_account: Optional[str] = Field(default=None, alias="payerAccount")
    receiver: Optional[str] = None
    receiver_account: Optional[str] = Field(default=None, alias="receiverAccount")
    amount: Optional[Decimal] = None
    timestamp: Optional[datetime] = None
    reference: Optional[str] = None
    reason: Optional[str] = None
    provider_raw_fields: dict[str, str] = Field(
        default_factory=dict, alias="providerRawFields"
    )

    @field_serializer("amount", when_used="json")
    def _amount_as_number(self, amount: Optional[Decimal]) -> Optional[float]:
        return float(amount) if amount is not None else None


# ---------------------------------------------------------------------------
# API response envelopes
# ---------------------------------------------------------------------------

class VerificationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    bank: str
    reference_number: str = Field(..., alias="referenceNumber")
    verified_receipt_id: str = Field(..., alias="verifiedReceiptId")
    receipt: CanonicalReceipt


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
