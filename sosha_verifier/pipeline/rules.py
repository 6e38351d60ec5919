"""
Declarative field rules and the value coercions they share.

Each provider describes its receipt layout as an ordered list of
``FieldRule`` objects.  For every field the first rule that locates a value
*and* whose postprocess accepts it wins; fields no rule can recover are
simply absent from the result.

Text rules are regexes over the extracted text.  Document rules walk the
parsed HTML table cells.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Literal, Optional, Sequence
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup

from sosha_verifier.config import settings
from sosha_verifier.pipeline.extractors import cell_text
from sosha_verifier.schemas import ProviderFields

RuleSource = Literal["text", "document"]
Postprocess = Callable[[str], Optional[str]]
Locator = Callable[[BeautifulSoup], Optional[str]]

ISO_FORMAT = "iso"


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldRule:
    field: str
    pattern: Optional[re.Pattern[str]] = None
    postprocess: Optional[Postprocess] = None
    source: RuleSource = "text"
    occurrence: int = 0
    locate: Optional[Locator] = None


def rule(
    field: str,
    pattern: str,
    postprocess: Optional[Postprocess] = None,
    *,
    occurrence: int = 0,
    flags: int = re.IGNORECASE,
) -> FieldRule:
    return FieldRule(
        field=field,
        pattern=re.compile(pattern, flags),
        postprocess=postprocess,
        occurrence=occurrence,
    )


def _label_cells(document: BeautifulSoup, label: str):
    """Innermost ``<td>`` cells whose text contains *label*."""
    wanted = " ".join(label.split()).lower()
    for cell in document.find_all("td"):
        if cell.find("td") is not None:
            continue
        if wanted in cell_text(cell).lower():
            yield cell


def label_cell(field: str, label: str, postprocess: Optional[Postprocess] = None) -> FieldRule:
    """Rule for a ``<td>label</td><td>value</td>`` pair in receipt markup.

    The value is the label cell's next sibling cell; an empty sibling means
    the field is absent.
    """
    def next_cell(document: BeautifulSoup) -> Optional[str]:
        cell = next(_label_cells(document, label), None)
        if cell is None:
            return None
        sibling = cell.find_next_sibling("td")
        return cell_text(sibling) if sibling is not None else None

    return FieldRule(field=field, postprocess=postprocess, source="document", locate=next_cell)


def column_cell(field: str, label: str, postprocess: Optional[Postprocess] = None) -> FieldRule:
    """Rule for a header cell whose value sits in the same column of the next row."""
    def cell_below(document: BeautifulSoup) -> Optional[str]:
        cell = next(_label_cells(document, label), None)
        row = cell.find_parent("tr") if cell is not None else None
        if row is None:
            return None
        headers = row.find_all("td", recursive=False)
        column = next((i for i, header in enumerate(headers) if header is cell), None)
        next_row = row.find_next_sibling("tr")
        if column is None or next_row is None:
            return None
        cells = next_row.find_all("td", recursive=False)
        return cell_text(cells[column]) if column < len(cells) else None

    return FieldRule(field=field, postprocess=postprocess, source="document", locate=cell_below)


def match_rule(
    field_rule: FieldRule, text: str, document: Optional[BeautifulSoup] = None
) -> Optional[str]:
    if field_rule.source == "document":
        if document is None or field_rule.locate is None:
            return None
        raw = field_rule.locate(document)
    else:
        raw = _regex_value(field_rule, text)

    value = (raw or "").strip()
    if not value:
        return None
    if field_rule.postprocess is not None:
        return field_rule.postprocess(value)
    return value


def _regex_value(field_rule: FieldRule, text: str) -> Optional[str]:
    for index, match in enumerate(field_rule.pattern.finditer(text)):
        if index == field_rule.occurrence:
            return match.group(1) if match.groups() else match.group(0)
    return None


def apply_rules(
    rules: Iterable[FieldRule], text: str, document: Optional[BeautifulSoup] = None
) -> ProviderFields:
    fields: ProviderFields = {}
    for field_rule in rules:
        if field_rule.field in fields:
            continue
        value = match_rule(field_rule, text, document)
        if value:
            fields[field_rule.field] = value
    return fields


def missing_fields(fields: ProviderFields, required: Sequence[str]) -> list[str]:
    return [name for name in required if not fields.get(name)]


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_AMOUNT_CANDIDATE = re.compile(r"\d[\d,]*(?:\.\d+)?")
_WELL_FORMED_AMOUNT = re.compile(r"^(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{1,2})?$")


def parse_amount(value: Optional[str]) -> Optional[Decimal]:
    """Parse currency text such as ``"12,345.67 Birr"`` into a Decimal.

    The longest well-formed digit run wins; anything unparseable yields None.
    """
    if not value:
        return None

    candidates = [
        match.group(0).rstrip(",")
        for match in _AMOUNT_CANDIDATE.finditer(value)
    ]
    candidates = [c for c in candidates if _WELL_FORMED_AMOUNT.match(c)]
    if not candidates:
        return None

    best = max(candidates, key=len)
    try:
        return Decimal(best.replace(",", ""))
    except InvalidOperation:
        return None


def amount_text(value: str) -> Optional[str]:
    """Postprocess: keep the text only if it holds a parseable amount."""
    return value if parse_amount(value) is not None else None


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def parse_timestamp(
    value: Optional[str],
    formats: Sequence[str],
    tz_name: Optional[str] = None,
) -> Optional[datetime]:
    """Parse provider wall-clock text into a UTC instant.

    Naive values are read in the provider timezone. Returns None when no
    format fits.
    """
    if not value:
        return None

    cleaned = " ".join(value.split()).strip(" ,")
    parsed: Optional[datetime] = None
    for fmt in formats:
        try:
            if fmt == ISO_FORMAT:
                parsed = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
            else:
                parsed = datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
        break

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=ZoneInfo(tz_name or settings.PROVIDER_TIMEZONE))
    return parsed.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------

def title_case(value: Optional[str]) -> Optional[str]:
    """Capitalize the first letter of each whitespace-delimited word."""
    if not value:
        return None
    words = value.split()
    if not words:
        return None
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)
