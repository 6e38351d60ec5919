"""
Dashen Bank: PDF receipts from the Dashen super-app receipt service.
"""
from __future__ import annotations

from sosha_verifier.pipeline.normalizer import build_canonical
from sosha_verifier.pipeline.rules import (
    ISO_FORMAT,
    amount_text,
    parse_amount,
    parse_timestamp,
    rule,
    title_case,
)
from sosha_verifier.providers.base import ReceiptProvider
from sosha_verifier.schemas import CanonicalReceipt, ProviderFields, RawReceiptPayload, ReceiptLocator

_MONEY = r"(?:ETB|Birr)?\s*([\d,]+\.?\d*)"


def _money(field: str, label: str):
    return rule(field, label + r"\s*" + _MONEY, amount_text)


DASHEN_RULES = (
    rule("senderName", r"Sender\s*Name\s*:?\s*(.*?)\s+(?:Sender\s*Account|Account)"),
    rule("senderAccountNumber", r"Sender\s*Account\s*(?:Number)?\s*:?\s*([A-Z0-9*\-]+)"),
    rule("transactionChannel", r"Transaction\s*Channel\s*:?\s*(.*?)\s+(?:Service|Type)"),
    rule("serviceType", r"Service\s*Type\s*:?\s*(.*?)\s+(?:Narrative|Description)"),
    rule("narrative", r"Narrative\s*:?\s*(.*?)\s+(?:Receiver|Phone)"),
    rule("receiverName", r"Receiver\s*Name\s*:?\s*(.*?)\s+(?:Phone|Institution)"),
    rule("phoneNo", r"Phone\s*(?:No\.?|Number)?\s*:?\s*([+\d\-\s]+)"),
    rule("institutionName", r"Institution\s*Name\s*:?\s*(.*?)\s+(?:Transaction|Reference)"),
    rule("transactionReference", r"Transaction\s*Reference\s*:?\s*([A-Z0-9\-]+)"),
    rule("transferReference", r"Transfer\s*Reference\s*:?\s*([A-Z0-9\-]+)"),
    rule("transactionDate", r"Transaction\s*Date\s*(?:&\s*Time)?\s*:?\s*([\d/\-,: ]+(?:[APM]{2})?)"),
    _money("transactionAmount", r"Transaction\s*Amount"),
    _money("serviceCharge", r"Service\s*Charge"),
    _money("exciseTax", r"Excise\s*Tax\s*(?:\(15%\))?"),
    _money("vat", r"VAT\s*(?:\(15%\))?"),
    _money("penaltyFee", r"Penalty\s*Fee"),
    _money("incomeTaxFee", r"Income\s*Tax\s*Fee"),
    _money("interestFee", r"Interest\s*Fee"),
    _money("stampDuty", r"Stamp\s*Duty"),
    _money("discountAmount", r"Discount\s*Amount"),
    _money("total", r"Total"),
)

TIMESTAMP_FORMATS = (
    "%m/%d/%Y, %I:%M:%S %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    ISO_FORMAT,
)


class DashenProvider(ReceiptProvider):
    bank = "DASHEN"
    label = "Dashen"
    rules = DASHEN_RULES
    required_fields = ("transactionReference", "transactionAmount")

    def fetch(self, locator: ReceiptLocator) -> RawReceiptPayload:
        return self._get(
            f"{self.base_url.rstrip('/')}/{locator.reference}",
            kind="pdf",
            headers={"Accept": "application/pdf"},
        )

    def normalize(self, fields: ProviderFields) -> CanonicalReceipt:
        # The receiving side of a Dashen transfer is identified by phone.
        return build_canonical(
            fields,
            payer=title_case(fields.get("senderName")),
            payer_account=fields.get("senderAccountNumber"),
            receiver=title_case(fields.get("receiverName")),
            receiver_account=fields.get("phoneNo"),
            amount=parse_amount(fields.get("transactionAmount")),
            timestamp=parse_timestamp(fields.get("transactionDate"), TIMESTAMP_FORMATS),
            reference=fields.get("transactionReference"),
            reason=fields.get("narrative"),
            source="Dashen receipt",
        )
