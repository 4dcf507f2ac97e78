"""Rule-based invoice field extraction engine.

Turns raw OCR text into an InvoiceData record. Every field is resolved
independently from the label table in ``rules`` and the record is built in a
single constructor call. The engine is a pure function: no I/O, no state kept
between calls, and no exception escapes for any input string.
"""

import logging
import math
import re

from invoicing.extraction import rules
from invoicing.extraction.schema import Currency, InvoiceData, LineItem

logger = logging.getLogger(__name__)

_HORIZONTAL_WHITESPACE = re.compile(r"[^\S\n]+")
_LEADING_INT = re.compile(r"[+-]?\d+")
_LEADING_FLOAT = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_NON_NUMERIC = re.compile(r"[^\d.]")

SYNTHESIZED_ITEM_NAME = "Service/Item"
DEFAULT_ITEM_NAME = "Item"


def normalize_text(raw_text: str) -> str:
    """Collapse whitespace runs to one space while keeping line breaks.

    Casing and punctuation are left untouched so captured dates and numbers
    keep their original form.
    """
    text = raw_text.replace("\r\n", "\n").replace("\r", "\n")
    return _HORIZONTAL_WHITESPACE.sub(" ", text)


def detect_currency(text: str) -> Currency:
    """Return the first currency whose symbol or code occurs in the text.

    Priority is fixed ($, ৳, €, £); USD when none occurs.
    """
    for code, marker in rules.CURRENCY_MARKERS:
        if marker.search(text):
            return Currency(code)
    return Currency.USD


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def parse_rate(value: str) -> float:
    """Parse a percentage capture, 0.0 when it is not a finite number."""
    try:
        return _finite_or_zero(float(value)) if value else 0.0
    except ValueError:
        return 0.0


def _parse_quantity(token: str) -> int:
    match = _LEADING_INT.match(token)
    if not match:
        return 1
    try:
        quantity = int(match.group())
    except ValueError:
        # digit runs beyond the int conversion limit
        return 1
    return quantity if quantity >= 1 else 1


def _parse_price(token: str) -> float:
    match = _LEADING_FLOAT.match(_NON_NUMERIC.sub("", token))
    if not match:
        return 0.0
    return _finite_or_zero(float(match.group()))


def is_item_line(line: str) -> bool:
    """Check whether a line looks like ``qty x rate``, ``qty @ rate`` or ``qty rate``."""
    return any(pattern.search(line) for pattern in rules.ITEM_LINE_PATTERNS)


def parse_item_line(line: str) -> LineItem:
    """Split an item line into name, quantity and rate.

    The last token is the rate, the one before it the quantity, and anything
    earlier is the name. Unparseable parts fall back to defaults.
    """
    parts = line.split()
    name = " ".join(parts[:-2]) or DEFAULT_ITEM_NAME
    quantity = _parse_quantity(parts[-2]) if len(parts) >= 2 else 1
    rate = _parse_price(parts[-1]) if parts else 0.0
    return LineItem(name=name, quantity=quantity, rate=rate)


def extract_items(text: str, total_amount: str) -> list[LineItem]:
    """Extract up to MAX_ITEMS line items in document order.

    When no line qualifies and a total was found, a single item carrying the
    total is synthesized instead.

    Args:
        text: Normalized document text
        total_amount: Resolved total (digits and decimal point only)

    Returns:
        List of line items, possibly empty
    """
    item_lines = [line for line in text.split("\n") if is_item_line(line)]
    items = [parse_item_line(line) for line in item_lines[: rules.MAX_ITEMS]]

    if not items and total_amount:
        items = [LineItem(name=SYNTHESIZED_ITEM_NAME, quantity=1, rate=_parse_price(total_amount))]

    return items


def extract(raw_text: str) -> InvoiceData:
    """Extract a structured invoice record from raw OCR text.

    Args:
        raw_text: Text produced by optical character recognition (may be empty)

    Returns:
        InvoiceData with every unmatched field left at its default
    """
    text = normalize_text(raw_text or "")

    fields = {rule.field: rule.resolve(text) for rule in rules.TEXT_RULES}
    fields["total_amount"] = fields["total_amount"].replace(",", "")

    for rule in rules.RATE_RULES:
        fields[rule.field] = parse_rate(rule.resolve(text))

    invoice = InvoiceData(
        **fields,
        currency=detect_currency(text),
        items=extract_items(text, fields["total_amount"]),
    )

    logger.debug(
        f"Extracted invoice {invoice.invoice_number or '<none>'}: "
        f"{len(invoice.items)} item(s), total={invoice.total_amount or '<none>'}"
    )
    return invoice
