"""
Commercial Bank of Ethiopia: PDF receipts keyed by reference + account suffix.
"""
from __future__ import annotations

from sosha_verifier.pipeline.normalizer import build_canonical
from sosha_verifier.pipeline.rules import (
    amount_text,
    parse_amount,
    parse_timestamp,
    rule,
    title_case,
)
from sosha_verifier.providers.base import ReceiptProvider
from sosha_verifier.schemas import CanonicalReceipt, ProviderFields, RawReceiptPayload, ReceiptLocator

# Payer and receiver both print an "Account" line; the first is the payer's.
# Older slips mask the account, newer ones print it in full.
_ACCOUNT = r"Account\s*:?\s*([A-Z0-9]?\*+\d{4,}|\d{8,})"

CBE_RULES = (
    rule("payerName", r"Payer\s*:?\s*(.*?)\s+Account"),
    rule("receiverName", r"Receiver\s*:?\s*(.*?)\s+Account"),
    rule("payerAccount", _ACCOUNT, occurrence=0),
    rule("receiverAccount", _ACCOUNT, occurrence=1),
    rule("reason", r"Reason\s*/\s*Type of service\s*:?\s*(.*?)\s+Transferred Amount"),
    rule("amount", r"Transferred Amount\s*:?\s*([\d,]+\.\d{2})\s*ETB", amount_text),
    rule("reference", r"Reference No\.?\s*\(VAT Invoice No\)\s*:?\s*([A-Z0-9]+)"),
    rule("paymentDate", r"Payment Date & Time\s*:?\s*([\d/,: ]+[APM]{2})"),
)

TIMESTAMP_FORMATS = (
    "%m/%d/%Y, %I:%M:%S %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y, %I:%M %p",
)


class CbeProvider(ReceiptProvider):
    bank = "CBE"
    label = "CBE"
    rules = CBE_RULES
    required_fields = (
        "payerName",
        "payerAccount",
        "receiverName",
        "receiverAccount",
        "amount",
        "paymentDate",
        "reference",
    )

    def fetch(self, locator: ReceiptLocator) -> RawReceiptPayload:
        receipt_id = f"{locator.reference}{locator.account_suffix or ''}"
        return self._get(
            self.base_url,
            kind="pdf",
            params={"id": receipt_id},
            headers={"Accept": "application/pdf"},
        )

    def normalize(self, fields: ProviderFields) -> CanonicalReceipt:
        return build_canonical(
            fields,
            payer=title_case(fields.get("payerName")),
            payer_account=fields.get("payerAccount"),
            receiver=title_case(fields.get("receiverName")),
            receiver_account=fields.get("receiverAccount"),
            amount=parse_amount(fields.get("amount")),
            timestamp=parse_timestamp(fields.get("paymentDate"), TIMESTAMP_FORMATS),
            reference=fields.get("reference"),
            reason=fields.get("reason"),
            source="CBE receipt",
        )
