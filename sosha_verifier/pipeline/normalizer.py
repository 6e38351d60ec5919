"""
Canonical normalization and completeness validation.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sosha_verifier.errors import ProviderParseFailure
from sosha_verifier.schemas import CanonicalReceipt, ProviderFields

# Canonical fields a receipt must carry before it can be trusted.
TRUST_FIELDS = ("payer", "receiverAccount", "amount", "timestamp", "reference")


def build_canonical(
    raw_fields: ProviderFields,
    *,
    payer: Optional[str],
    receiver_account: Optional[str],
    amount: Optional[Decimal],
    timestamp: Optional[datetime],
    reference: Optional[str],
    payer_account: Optional[str] = None,
    receiver: Optional[str] = None,
    reason: Optional[str] = None,
    source: str = "receipt",
) -> CanonicalReceipt:
    """Assemble a successful CanonicalReceipt or raise ProviderParseFailure."""
    present = {
        "payer": payer,
        "receiverAccount": receiver_account,
        "amount": amount,
        "timestamp": timestamp,
        "reference": reference,
    }
    missing = [name for name in TRUST_FIELDS if present[name] in (None, "")]
    if missing:
        raise ProviderParseFailure(
            f"Could not normalize {source}: missing {', '.join(missing)}."
        )

    return CanonicalReceipt(
        success=True,
        payer=payer,
        payer_account=payer_account or None,
        receiver=receiver or None,
        receiver_account=receiver_account,
        amount=amount,
        timestamp=timestamp,
        reference=reference,
        reason=reason or None,
        provider_raw_fields=dict(raw_fields),
    )
