"""Label pattern table for invoice field extraction.

Each field maps to an ordered list of (pattern, capture group) matchers.
Matchers are tried in listed order and the first non-empty capture wins,
so adding a label variant never touches the resolution code.

Patterns run case-insensitively against whitespace-normalized text that keeps
its original casing and line breaks.
"""

import re
from dataclasses import dataclass

CURRENCY_SYMBOLS = "$৳€£"

_SYMBOL = rf"[{re.escape(CURRENCY_SYMBOLS)}]"
_DATE = r"\d{1,2}[/-]\d{1,2}[/-]\d{2,4}"
_AMOUNT = r"\d+(?:,\d{3})*(?:\.\d{2})?"
_PERCENT = r"\d+(?:\.\d+)?"
_REST_OF_LINE = r"([^\n]+)"
# Label and value share a line.
_SPACE = r"[^\S\n]*"
# A token that is itself a label word ("Invoice Date", "Bill To") is not a number.
_LABEL_WORDS = r"(?:invoice|inv|number|no|date|due|bill|to|from|receipt|total)"
_INVOICE_TOKEN = rf"((?!{_LABEL_WORDS}(?![a-z0-9-]))[a-z0-9][a-z0-9-]*)"


@dataclass(frozen=True)
class FieldMatcher:
    """One candidate pattern for a field and the group holding its value."""

    pattern: re.Pattern[str]
    group: int = 1

    def capture(self, text: str) -> str:
        """Return the trimmed capture of the first match, or ``""``."""
        match = self.pattern.search(text)
        if not match:
            return ""
        return (match.group(self.group) or "").strip()


@dataclass(frozen=True)
class ExtractionRule:
    """Ordered matchers for a single InvoiceData field."""

    field: str
    matchers: tuple[FieldMatcher, ...]

    def resolve(self, text: str) -> str:
        """Apply matchers in order; first non-empty capture wins.

        Args:
            text: Normalized document text

        Returns:
            Captured value or empty string when nothing matched
        """
        for matcher in self.matchers:
            value = matcher.capture(text)
            if value:
                return value
        return ""


def _rule(field: str, *patterns: str) -> ExtractionRule:
    return ExtractionRule(
        field=field,
        matchers=tuple(FieldMatcher(re.compile(p, re.IGNORECASE)) for p in patterns),
    )


INVOICE_NUMBER = _rule(
    "invoice_number",
    rf"\binvoice\b{_SPACE}(?:number\b|no\b\.?)?{_SPACE}#?{_SPACE}:?{_SPACE}{_INVOICE_TOKEN}",
    rf"\binv\b\.?{_SPACE}#?{_SPACE}:?{_SPACE}{_INVOICE_TOKEN}",
    rf"\binvoice{_SPACE}no\b\.?{_SPACE}:?{_SPACE}{_INVOICE_TOKEN}",
    rf"\bbill\b{_SPACE}#?{_SPACE}:?{_SPACE}{_INVOICE_TOKEN}",
    rf"\breceipt\b{_SPACE}#?{_SPACE}:?{_SPACE}{_INVOICE_TOKEN}",
)

DATE = _rule(
    "date",
    rf"(?<!due\s)\bdate\s*:?\s*({_DATE})",
    rf"\binvoice\s+date\s*:?\s*({_DATE})",
    rf"\bissue\s+date\s*:?\s*({_DATE})",
    rf"(?<!\d)({_DATE})(?!\d)",
)

# No bare-date fallback: a due date has to be labeled.
DUE_DATE = _rule(
    "due_date",
    rf"\bdue\s+date\s*:?\s*({_DATE})",
    rf"\bpayment\s+due\s*:?\s*({_DATE})",
    rf"\bdue\s+by\s*:?\s*({_DATE})",
)

TOTAL_AMOUNT = _rule(
    "total_amount",
    rf"(?<!grand\s)\btotal\s*:?\s*{_SYMBOL}?\s*({_AMOUNT})",
    rf"\bgrand\s+total\s*:?\s*{_SYMBOL}?\s*({_AMOUNT})",
    rf"\bamount\s+due\s*:?\s*{_SYMBOL}?\s*({_AMOUNT})",
    rf"\bbalance\s+due\s*:?\s*{_SYMBOL}?\s*({_AMOUNT})",
    rf"\bnet\s+amount\s*:?\s*{_SYMBOL}?\s*({_AMOUNT})",
)

SUPPLIER_NAME = _rule(
    "supplier_name",
    rf"\bsupplier\b\s*:?\s*{_REST_OF_LINE}",
    rf"\bfrom\b\s*:?\s*{_REST_OF_LINE}",
    rf"\bcompany\b\s*:?\s*{_REST_OF_LINE}",
    rf"\bvendor\b\s*:?\s*{_REST_OF_LINE}",
    rf"\bseller\b\s*:?\s*{_REST_OF_LINE}",
)

# "to" is broad and also fires on unrelated lines that start with it.
CUSTOMER_NAME = _rule(
    "customer_name",
    rf"\bbill\s+to\b\s*:?\s*{_REST_OF_LINE}",
    rf"\bcustomer\b\s*:?\s*{_REST_OF_LINE}",
    rf"\bclient\b\s*:?\s*{_REST_OF_LINE}",
    rf"\bto\b\s*:?\s*{_REST_OF_LINE}",
)

# Only the supplier side has an address rule.
SUPPLIER_ADDRESS = _rule(
    "supplier_address",
    rf"\baddress\b\s*:?\s*{_REST_OF_LINE}",
    rf"\blocation\b\s*:?\s*{_REST_OF_LINE}",
)

TAX_RATE = _rule(
    "tax_rate",
    rf"\btax\b\s*:?\s*({_PERCENT})%",
    rf"\bvat\b\s*:?\s*({_PERCENT})%",
    rf"\bgst\b\s*:?\s*({_PERCENT})%",
)

DISCOUNT_RATE = _rule(
    "discount_rate",
    rf"\bdiscount\b\s*:?\s*({_PERCENT})%",
    rf"\bdiscount\s+rate\s*:?\s*({_PERCENT})%",
)

TEXT_RULES: tuple[ExtractionRule, ...] = (
    INVOICE_NUMBER,
    DATE,
    DUE_DATE,
    TOTAL_AMOUNT,
    SUPPLIER_NAME,
    CUSTOMER_NAME,
    SUPPLIER_ADDRESS,
)

RATE_RULES: tuple[ExtractionRule, ...] = (TAX_RATE, DISCOUNT_RATE)

# Checked in this order; the first hit decides the currency.
CURRENCY_MARKERS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("USD", re.compile(r"\$|\busd\b", re.IGNORECASE)),
    ("BDT", re.compile(r"৳|\bbdt\b", re.IGNORECASE)),
    ("EUR", re.compile(r"€|\beur\b", re.IGNORECASE)),
    ("GBP", re.compile(r"£|\bgbp\b", re.IGNORECASE)),
)

# Digit runs must be separated by whitespace, a currency symbol, "x" or "@",
# so plain amounts like "$120.00" or dates are not item lines.
ITEM_LINE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"\d+\s*[x×]\s*{_SYMBOL}?\s*\d+", re.IGNORECASE),
    re.compile(rf"\d+\s*@\s*{_SYMBOL}?\s*\d+"),
    re.compile(rf"\d+(?:\s+{_SYMBOL}?|\s*{_SYMBOL})\s*\d+"),
)

MAX_ITEMS = 5
