"""
CBE-Birr: mobile-money PDF receipts behind a bank-issued bearer token.
"""
from __future__ import annotations

from sosha_verifier.errors import UnauthenticatedError
from sosha_verifier.pipeline.normalizer import build_canonical
from sosha_verifier.pipeline.rules import amount_text, parse_amount, parse_timestamp, rule, title_case
from sosha_verifier.providers.base import ReceiptProvider
from sosha_verifier.schemas import CanonicalReceipt, ProviderFields, RawReceiptPayload, ReceiptLocator

TOKEN_REQUIRED_MESSAGE = (
    "Bank bearer token is required in Authorization header or x-cbe-birr-token header"
)

_MONEY = r"\s*([\d,]+\.\d{2})"

CBEBIRR_RULES = (
    rule("customerName", r"Customer Name:\s*([^\n\r]+?)(?=\s*Region:)"),
    rule("creditAccount", r"Credit Account\s+([^\n\r]+?)(?=\s*Receiver Name)"),
    rule("receiverName", r"Receiver Name\s+([^\n\r]+?)(?=\s*Order ID)"),
    rule("orderId", r"Order ID\s+([A-Z0-9]+)"),
    rule("orderId", r"(FT\d+[A-Z0-9]*)"),
    rule("transactionStatus", r"Transaction Status\s+([^\n\r]+?)(?=\s*Reference)"),
    rule("reference", r"Reference\s+([^\n\r]+?)(?=\s*Receipt Number)"),
    rule("receiptNumber", r"Receipt Number\s+([A-Z0-9]+)"),
    rule("transactionDate", r"(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2})"),
    rule("amount", r"Amount" + _MONEY, amount_text),
    rule("paidAmount", r"Paid amount" + _MONEY, amount_text),
    rule("serviceCharge", r"Service Charge" + _MONEY, amount_text),
    rule("vat", r"VAT" + _MONEY, amount_text),
    rule("totalPaidAmount", r"Total Paid Amount" + _MONEY, amount_text),
)

TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M",)


class CbeBirrProvider(ReceiptProvider):
    bank = "CBEBIRR"
    label = "CBE Birr"
    rules = CBEBIRR_RULES
    required_fields = ("receiptNumber",)

    def fetch(self, locator: ReceiptLocator) -> RawReceiptPayload:
        if not locator.bearer_token:
            raise UnauthenticatedError(TOKEN_REQUIRED_MESSAGE)
        return self._get(
            self.base_url,
            kind="pdf",
            params={"TID": locator.reference, "PH": locator.phone_number or ""},
            headers={
                "Authorization": f"Bearer {locator.bearer_token}",
                "Accept": "application/pdf",
            },
        )

    def completeness_floor(self, fields: ProviderFields) -> list[str]:
        missing = super().completeness_floor(fields)
        if not (fields.get("paidAmount") or fields.get("amount")):
            missing.append("amount")
        return missing

    def normalize(self, fields: ProviderFields) -> CanonicalReceipt:
        reference = fields.get("receiptNumber") or fields.get("reference") or fields.get("orderId")
        return build_canonical(
            fields,
            payer=title_case(fields.get("customerName")),
            receiver=title_case(fields.get("receiverName")) or fields.get("creditAccount"),
            receiver_account=fields.get("creditAccount"),
            amount=parse_amount(fields.get("paidAmount") or fields.get("amount")),
            timestamp=parse_timestamp(fields.get("transactionDate"), TIMESTAMP_FORMATS),
            reference=reference,
            source="CBE Birr receipt",
        )
