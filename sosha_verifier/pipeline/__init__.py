"""
Sosha Verifier core pipeline.

Orchestrates: duplicate check → fetch → extract/parse → normalize →
ownership → record.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from sosha_verifier.pipeline.idempotency import ReceiptLedger
from sosha_verifier.pipeline.ownership import ensure_owned
from sosha_verifier.schemas import ApiKeyPrincipal, ReceiptLocator, VerificationResponse

if TYPE_CHECKING:
    from sosha_verifier.providers.base import ReceiptProvider

logger = logging.getLogger(__name__)


def verify_receipt(
    provider: "ReceiptProvider",
    locator: ReceiptLocator,
    ledger: ReceiptLedger,
    principal: ApiKeyPrincipal,
    order_id: Optional[str] = None,
    branch_id: Optional[str] = None,
    manual_override: bool = False,
) -> VerificationResponse:
    """Verify one receipt end to end and record it.

    Each stage raises a ``VerifierError`` subclass on failure, so a receipt
    is only recorded once every earlier gate has passed.
    """
    bank = provider.bank
    reference = locator.reference

    logger.info("Pipeline start for %s/%s: duplicate check", bank, reference)
    ledger.ensure_not_used(reference, bank)

    logger.info("Pipeline: retrieve and parse")
    fields = provider.retrieve(locator)
    logger.info("Recovered %d fields", len(fields))

    logger.info("Pipeline: normalize")
    receipt = provider.normalize(fields)
    logger.info("Normalized receipt %s for amount %s", receipt.reference, receipt.amount)

    logger.info("Pipeline: ownership")
    ensure_owned(receipt, provider.ownership_suffix, ledger.operator_name)

    logger.info("Pipeline: record")
    record = ledger.record(
        reference_number=reference,
        bank=bank,
        amount=receipt.amount,
        receiver_account=receipt.receiver_account,
        verified_by=principal.name,
        order_id=order_id,
        branch_id=branch_id,
        manual_override=manual_override,
    )
    logger.info("Receipt verified: %s", record.id)

    return VerificationResponse(
        bank=bank,
        reference_number=reference,
        verified_receipt_id=record.id,
        receipt=receipt,
    )
