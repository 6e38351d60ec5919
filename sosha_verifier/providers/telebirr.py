"""
Telebirr: server-rendered HTML receipts with a JSON-speaking proxy as fallback.

The primary page is bilingual (Amharic/English) and laid out as label/value
table cells.  When the primary is skipped, unreachable or yields an invalid
receipt, the proxy is consulted; a partial primary result is never merged
into the proxy's answer.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from sosha_verifier.config import settings
from sosha_verifier.errors import ProviderError, ProviderParseFailure
from sosha_verifier.pipeline.extractors import cell_text, document_text, parse_markup
from sosha_verifier.pipeline.normalizer import build_canonical
from sosha_verifier.pipeline.rules import (
    ISO_FORMAT,
    FieldRule,
    amount_text,
    apply_rules,
    column_cell,
    label_cell,
    parse_amount,
    parse_timestamp,
    rule,
    title_case,
)
from sosha_verifier.providers.base import ReceiptProvider
from sosha_verifier.schemas import CanonicalReceipt, ProviderFields, RawReceiptPayload, ReceiptLocator

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Receipt not found or could not be processed."

_BIRR = r"(\d[\d,]*(?:\.\d{2})?\s*Birr)"
_SETTLED_AMOUNT = "የተከፈለው መጠን/Settled Amount"
_RECEIPT_NUMBER = re.compile(r"[A-Z0-9]+")


def _receipt_number(value: str) -> Optional[str]:
    return value if _RECEIPT_NUMBER.fullmatch(value) else None


def _first_detail_cell(document: BeautifulSoup) -> Optional[str]:
    cell = document.find("td", class_="receipttableTd2")
    return cell_text(cell) if cell is not None else None


TELEBIRR_RULES = (
    label_cell("payerName", "የከፋይ ስም/Payer Name"),
    label_cell("payerTelebirrNo", "የከፋይ ቴሌብር ቁ./Payer telebirr no."),
    label_cell("creditedPartyName", "የገንዘብ ተቀባይ ስም/Credited Party name"),
    label_cell("creditedPartyAccountNo", "የገንዘብ ተቀባይ ቴሌብር ቁ./Credited party account no"),
    label_cell("transactionStatus", "የክፍያው ሁኔታ/transaction status"),
    label_cell("bankAccountNumber", "የባንክ አካውንት ቁጥር/Bank account number"),
    label_cell("serviceFeeVAT", "የአገልግሎት ክፍያ ተ.እ.ታ/Service fee VAT"),
    label_cell("totalPaidAmount", "ጠቅላላ የተከፈለ/Total Paid Amount"),
    # Transaction details: a header row over a value row.
    column_cell("receiptNo", "የክፍያ ቁጥር/Invoice No.", _receipt_number),
    FieldRule("receiptNo", postprocess=_receipt_number, source="document", locate=_first_detail_cell),
    column_cell("paymentDate", "የክፍያ ቀን/Payment date"),
    rule("paymentDate", r"(\d{2}-\d{2}-\d{4}\s+\d{2}:\d{2}:\d{2})", flags=0),
    # Settled amount: the layout has shifted over time, newest first.
    label_cell("settledAmount", _SETTLED_AMOUNT, amount_text),
    column_cell("settledAmount", _SETTLED_AMOUNT, amount_text),
    rule("settledAmount", r"Settled\s+Amount\s*:?\s*" + _BIRR, amount_text),
    rule("settledAmount", r"Settled\s+Amount.*?" + _BIRR, amount_text),
    label_cell("serviceFee", "የአገልግሎት ክፍያ/Service fee"),
    rule("serviceFee", r"Service\s+fee(?!\s+VAT)\s*:?\s*" + _BIRR),
)

# Keys of the proxy's ``data`` object, which mirror the HTML field names.
JSON_FIELDS = (
    "payerName",
    "payerTelebirrNo",
    "creditedPartyName",
    "creditedPartyAccountNo",
    "transactionStatus",
    "receiptNo",
    "paymentDate",
    "settledAmount",
    "serviceFee",
    "serviceFeeVAT",
    "totalPaidAmount",
    "bankName",
)

_BANK_ACCOUNT = re.compile(r"(\d+)\s+(.*)")

TIMESTAMP_FORMATS = (
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y %H:%M",
    ISO_FORMAT,
)


class TelebirrProvider(ReceiptProvider):
    bank = "TELEBIRR"
    label = "Telebirr"
    rules = TELEBIRR_RULES
    required_fields = ("receiptNo", "payerName", "transactionStatus")

    def __init__(
        self,
        client: httpx.Client,
        *,
        proxy_url: Optional[str] = None,
        try_primary_first: bool = True,
        **kwargs,
    ):
        kwargs.setdefault("timeout", settings.TELEBIRR_TIMEOUT_SECONDS)
        super().__init__(client, **kwargs)
        self.proxy_url = proxy_url or settings.TELEBIRR_PROXY_URL
        self.try_primary_first = try_primary_first

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def fetch(self, locator: ReceiptLocator) -> RawReceiptPayload:
        return self._get(f"{self.base_url.rstrip('/')}/{locator.reference}", kind="html")

    def fetch_proxy(self, locator: ReceiptLocator) -> RawReceiptPayload:
        payload = self._get(
            self.proxy_url,
            kind="html",
            params={"reference": locator.reference},
            headers={
                "Accept": "application/json, text/html;q=0.9",
                "User-Agent": settings.PROXY_USER_AGENT,
            },
        )
        if "application/json" in payload.content_type:
            return RawReceiptPayload(
                content=payload.content,
                kind="json",
                content_type=payload.content_type,
                source_url=payload.source_url,
            )
        return payload

    # ------------------------------------------------------------------
    # Parse
    # ------------------------------------------------------------------

    def parse(self, payload: RawReceiptPayload) -> ProviderFields:
        if payload.kind == "json":
            fields = self.parse_json(payload.text())
            if fields is not None and not self.completeness_floor(fields):
                return fields
            logger.info("Telebirr proxy JSON incomplete, reading body as HTML")
        return self.parse_html(payload.text())

    def parse_html(self, markup: str) -> ProviderFields:
        document = parse_markup(markup)
        fields = apply_rules(self.rules, document_text(document), document)

        # A bank-account row means the payment went to a bank: the row holds
        # "<account> <holder>" and the credited-party cell names the bank.
        bank_account = fields.pop("bankAccountNumber", None)
        if bank_account:
            if fields.get("creditedPartyName"):
                fields["bankName"] = fields["creditedPartyName"]
            match = _BANK_ACCOUNT.match(bank_account)
            if match:
                fields["creditedPartyAccountNo"] = match.group(1).strip()
                fields["creditedPartyName"] = match.group(2).strip()
        return fields

    def parse_json(self, body: str) -> Optional[ProviderFields]:
        try:
            document = json.loads(body)
        except ValueError:
            logger.warning("Telebirr proxy sent malformed JSON")
            return None

        if not isinstance(document, dict) or not document.get("success"):
            return None
        data = document.get("data")
        if not isinstance(data, dict):
            return None

        fields: ProviderFields = {}
        for name in JSON_FIELDS:
            value = data.get(name)
            if value not in (None, ""):
                fields[name] = str(value).strip()
        return fields

    # ------------------------------------------------------------------
    # Template
    # ------------------------------------------------------------------

    def retrieve(self, locator: ReceiptLocator) -> ProviderFields:
        reference = locator.reference

        if self.try_primary_first:
            fields = self._attempt(self.fetch, locator, "primary")
            if fields is not None:
                return fields
            logger.warning(
                "Primary Telebirr verification failed for %s, trying fallback proxy", reference
            )
        else:
            logger.info("Skipping primary Telebirr receipt endpoint for %s", reference)

        fields = self._attempt(self.fetch_proxy, locator, "proxy")
        if fields is not None:
            return fields

        logger.error("Both primary and fallback Telebirr verification failed for %s", reference)
        raise ProviderParseFailure(NOT_FOUND_MESSAGE, status_code=404)

    def _attempt(self, fetch, locator: ReceiptLocator, source: str) -> Optional[ProviderFields]:
        """Fetch and parse one source; None unless the result is valid."""
        try:
            fields = self.parse(fetch(locator))
        except ProviderError as exc:
            logger.warning("Telebirr %s source failed: %s", source, exc.message)
            return None

        missing = self.completeness_floor(fields)
        if missing:
            logger.warning("Telebirr %s receipt invalid, missing: %s", source, ", ".join(missing))
            return None
        return fields

    def normalize(self, fields: ProviderFields) -> CanonicalReceipt:
        return build_canonical(
            fields,
            payer=title_case(fields.get("payerName")),
            payer_account=fields.get("payerTelebirrNo"),
            receiver=title_case(fields.get("creditedPartyName")),
            receiver_account=fields.get("creditedPartyAccountNo"),
            amount=parse_amount(fields.get("settledAmount")),
            timestamp=parse_timestamp(fields.get("paymentDate"), TIMESTAMP_FORMATS),
            reference=fields.get("receiptNo"),
            source="Telebirr receipt",
        )
