"""
Bank of Abyssinia: online-slip JSON API.
"""
from __future__ import annotations

import json
import logging

from sosha_verifier.errors import ProviderParseFailure
from sosha_verifier.pipeline.normalizer import build_canonical
from sosha_verifier.pipeline.rules import ISO_FORMAT, parse_amount, parse_timestamp, title_case
from sosha_verifier.providers.base import ReceiptProvider
from sosha_verifier.schemas import CanonicalReceipt, ProviderFields, RawReceiptPayload, ReceiptLocator

logger = logging.getLogger(__name__)

PAYER_NAME = "Payer's Name"
SOURCE_ACCOUNT = "Source Account"
SOURCE_ACCOUNT_NAME = "Source Account Name"
TRANSFERRED_AMOUNT = "Transferred Amount"
TRANSACTION_DATE = "Transaction Date"
TRANSACTION_REFERENCE = "Transaction Reference"
NARRATIVE = "Narrative"

TIMESTAMP_FORMATS = (
    "%m/%d/%y %H:%M",
    "%m/%d/%Y %H:%M",
    "%m/%d/%y %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M:%S %p",
    "%Y-%m-%d %H:%M:%S",
    ISO_FORMAT,
)


class AbyssiniaProvider(ReceiptProvider):
    bank = "ABYSSINIA"
    label = "Abyssinia"
    required_fields = (TRANSACTION_REFERENCE, TRANSFERRED_AMOUNT, PAYER_NAME)

    def fetch(self, locator: ReceiptLocator) -> RawReceiptPayload:
        receipt_id = f"{locator.reference}{locator.account_suffix or ''}"
        return self._get(
            self.base_url,
            kind="json",
            params={"id": receipt_id},
            headers={"Accept": "application/json, text/plain, */*"},
        )

    def parse(self, payload: RawReceiptPayload) -> ProviderFields:
        """Flatten the first transaction of the slip into string fields."""
        try:
            document = json.loads(payload.text())
        except ValueError as exc:
            logger.warning("Abyssinia API returned non-JSON body")
            raise ProviderParseFailure("Abyssinia API did not return JSON") from exc

        if not isinstance(document, dict) or not document.get("header") or "body" not in document:
            raise ProviderParseFailure("Invalid response structure from Abyssinia API")

        header = document["header"]
        status = header.get("status") if isinstance(header, dict) else None
        if status != "success":
            raise ProviderParseFailure(f"API returned error status: {status}")

        body = document["body"]
        if not isinstance(body, list) or not body or not isinstance(body[0], dict):
            raise ProviderParseFailure("No transaction data found in Abyssinia response body")

        fields: ProviderFields = {}
        for key, value in body[0].items():
            if value is None or isinstance(value, (dict, list)):
                continue
            text = str(value).strip()
            if text:
                fields[key] = text
        return fields

    def completeness_floor(self, fields: ProviderFields) -> list[str]:
        missing = super().completeness_floor(fields)
        if TRANSFERRED_AMOUNT not in missing and parse_amount(fields.get(TRANSFERRED_AMOUNT)) is None:
            missing.append(TRANSFERRED_AMOUNT)
        return missing

    def normalize(self, fields: ProviderFields) -> CanonicalReceipt:
        # The slip only carries the source account, which is what the
        # ownership suffix is checked against.
        return build_canonical(
            fields,
            payer=title_case(fields.get(PAYER_NAME)),
            payer_account=fields.get(SOURCE_ACCOUNT),
            receiver=title_case(fields.get(SOURCE_ACCOUNT_NAME)),
            receiver_account=fields.get(SOURCE_ACCOUNT),
            amount=parse_amount(fields.get(TRANSFERRED_AMOUNT)),
            timestamp=parse_timestamp(fields.get(TRANSACTION_DATE), TIMESTAMP_FORMATS),
            reference=fields.get(TRANSACTION_REFERENCE),
            reason=fields.get(NARRATIVE),
            source="Abyssinia receipt",
        )
