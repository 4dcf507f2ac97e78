"""Invoice data models produced by field extraction.

Every field has a zero-value default so a record is always complete, even when
nothing could be recognized in the source text.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Currency(str, Enum):
    """Currencies recognized on scanned invoices."""

    USD = "USD"
    BDT = "BDT"
    EUR = "EUR"
    GBP = "GBP"


class LineItem(BaseModel):
    """Single billed line of an invoice."""

    model_config = ConfigDict(frozen=True)

    name: str = Field("Item", description="Item or service description")
    quantity: int = Field(1, description="Billed quantity", ge=1)
    rate: float = Field(0.0, description="Unit price", ge=0, allow_inf_nan=False)


class InvoiceTotals(BaseModel):
    """Amounts derived from line items and percentage rates."""

    subtotal: float
    tax_amount: float
    discount_amount: float
    total: float


class InvoiceData(BaseModel):
    """Structured invoice data extracted from a document.

    Dates and the total are kept as the raw substrings found in the text;
    consumers must tolerate formats that do not parse.
    """

    model_config = ConfigDict(frozen=True)

    invoice_number: str = Field("", description="Invoice identifier")
    date: str = Field("", description="Issue date as written on the document")
    due_date: str = Field("", description="Payment due date as written on the document")
    total_amount: str = Field("", description="Total without thousands separators")

    # Parties
    supplier_name: str = Field("", description="Supplier/vendor name")
    supplier_address: str = Field("", description="Supplier address")
    customer_name: str = Field("", description="Customer/bill-to name")
    customer_address: str = Field("", description="Customer address")

    # Financial details
    currency: Currency = Field(Currency.USD, description="Invoice currency")
    tax_rate: float = Field(
        0.0, description="Tax rate in percent (7.5 means 7.5%)", allow_inf_nan=False
    )
    discount_rate: float = Field(
        0.0, description="Discount rate in percent", allow_inf_nan=False
    )
    items: list[LineItem] = Field(default_factory=list, description="Billed line items")

    def totals(self) -> InvoiceTotals:
        """Compute subtotal, tax, discount and grand total from the line items.

        Returns:
            InvoiceTotals rounded to cents
        """
        subtotal = sum(item.quantity * item.rate for item in self.items)
        tax_amount = subtotal * self.tax_rate / 100
        discount_amount = subtotal * self.discount_rate / 100
        return InvoiceTotals(
            subtotal=round(subtotal, 2),
            tax_amount=round(tax_amount, 2),
            discount_amount=round(discount_amount, 2),
            total=round(subtotal + tax_amount - discount_amount, 2),
        )
