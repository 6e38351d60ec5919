"""
Provider contract shared by every receipt source.

A provider knows where its receipts live, what shape they come back in and
which declarative rules recover its fields.  ``retrieve`` is the template
every request goes through: fetch → parse → completeness floor.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar, Optional, Sequence

import httpx

from sosha_verifier.config import settings
from sosha_verifier.errors import ProviderParseFailure, ProviderUnreachableError
from sosha_verifier.pipeline.extractors import document_text, extract_pdf_text, parse_markup
from sosha_verifier.pipeline.rules import FieldRule, apply_rules, missing_fields
from sosha_verifier.schemas import (
    CanonicalReceipt,
    PayloadKind,
    ProviderFields,
    RawReceiptPayload,
    ReceiptLocator,
)

logger = logging.getLogger(__name__)


class ReceiptProvider(ABC):
    bank: ClassVar[str]
    label: ClassVar[str]
    rules: ClassVar[Sequence[FieldRule]] = ()
    required_fields: ClassVar[Sequence[str]] = ()

    def __init__(
        self,
        client: httpx.Client,
        *,
        base_url: str,
        ownership_suffix: Optional[str] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
    ):
        self.client = client
        self.base_url = base_url
        self.ownership_suffix = ownership_suffix or None
        self.timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT_SECONDS
        self.user_agent = user_agent or settings.BROWSER_USER_AGENT

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    @abstractmethod
    def fetch(self, locator: ReceiptLocator) -> RawReceiptPayload:
        """Retrieve the raw receipt for *locator* from the provider."""

    def _get(
        self,
        url: str,
        *,
        kind: PayloadKind,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> RawReceiptPayload:
        request_headers = {"User-Agent": self.user_agent}
        request_headers.update(headers or {})
        try:
            response = self.client.get(
                url,
                params=params,
                headers=request_headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.TimeoutException as exc:
            logger.warning("%s receipt fetch timed out: %s", self.label, url)
            raise ProviderUnreachableError(
                f"Timed out fetching {self.label} receipt"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("%s receipt fetch failed: %s (%s)", self.label, url, exc)
            raise ProviderUnreachableError(
                f"Could not reach {self.label} receipt service"
            ) from exc

        if not response.is_success:
            logger.warning("%s receipt fetch returned HTTP %s", self.label, response.status_code)
            raise ProviderUnreachableError(
                f"Failed to fetch {self.label} receipt: HTTP {response.status_code}"
            )

        return RawReceiptPayload(
            content=response.content,
            kind=kind,
            content_type=response.headers.get("content-type", ""),
            source_url=str(response.request.url),
        )

    # ------------------------------------------------------------------
    # Parse
    # ------------------------------------------------------------------

    def parse(self, payload: RawReceiptPayload) -> ProviderFields:
        """Run the provider's rules over the extracted payload.

        PDF payloads are reduced to their page text.  HTML payloads are parsed
        once: ``source="document"`` rules walk its table cells and the rest
        read its text.
        """
        if payload.kind == "pdf":
            return apply_rules(self.rules, extract_pdf_text(payload.content))
        if payload.kind == "html":
            document = parse_markup(payload.text())
            return apply_rules(self.rules, document_text(document), document)
        raise ProviderParseFailure(f"Unexpected {self.label} payload type: {payload.kind}")

    def completeness_floor(self, fields: ProviderFields) -> list[str]:
        """Names of the fields below this provider's floor (empty when complete)."""
        return missing_fields(fields, self.required_fields)

    @abstractmethod
    def normalize(self, fields: ProviderFields) -> CanonicalReceipt:
        """Map provider fields onto a CanonicalReceipt."""

    # ------------------------------------------------------------------
    # Template
    # ------------------------------------------------------------------

    def retrieve(self, locator: ReceiptLocator) -> ProviderFields:
        payload = self.fetch(locator)
        fields = self.parse(payload)
        self._ensure_complete(fields)
        return fields

    def _ensure_complete(self, fields: ProviderFields) -> None:
        missing = self.completeness_floor(fields)
        if missing:
            logger.warning(
                "%s receipt below completeness floor, missing: %s",
                self.label, ", ".join(missing),
            )
            raise ProviderParseFailure(
                f"Could not extract all required fields from {self.label} receipt "
                f"(missing: {', '.join(missing)})."
            )
