"""Records exchanged with the invoicing backend.

These mirror the backend's Client, Business and Invoice tables. The agent
consumes them; it never owns their lifecycle.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaxMode(str, Enum):
    BY_TOTAL = "BY_TOTAL"
    BY_PRODUCT = "BY_PRODUCT"
    NONE = "NONE"


class QuantityUnit(str, Enum):
    DAYS = "DAYS"
    HOURS = "HOURS"
    UNITS = "UNITS"


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"
    NONE = "NONE"


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"


class ClientRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    workspace_id: int = Field(alias="workspaceId")
    sequence: int = 0
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    business_name: Optional[str] = Field(default=None, alias="businessName")


class BusinessRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    workspace_id: int = Field(alias="workspaceId")
    sequence: int = 0
    name: str
    is_default: bool = Field(default=False, alias="isDefault")
    default_tax_mode: Optional[TaxMode] = Field(default=None, alias="defaultTaxMode")
    default_tax_name: Optional[str] = Field(default=None, alias="defaultTaxName")
    default_tax_percentage: Optional[float] = Field(
        default=None, alias="defaultTaxPercentage"
    )
    default_notes: Optional[str] = Field(default=None, alias="defaultNotes")
    default_terms: Optional[str] = Field(default=None, alias="defaultTerms")


class InvoiceLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    quantity: float
    quantity_unit: QuantityUnit = Field(default=QuantityUnit.UNITS, alias="quantityUnit")
    unit_price: float = Field(alias="unitPrice")
    discount: float = 0.0
    discount_type: DiscountType = Field(default=DiscountType.NONE, alias="discountType")
    tax: float = 0.0
    vat_enabled: bool = Field(default=False, alias="vatEnabled")
    total: float


class InvoiceCreate(BaseModel):
    """Payload for a single write that stores an invoice with its items.

    The store assigns ``id``, ``sequence`` and ``invoice_number``.
    """

    model_config = ConfigDict(populate_by_name=True)

    workspace_id: int = Field(alias="workspaceId")
    client_id: int = Field(alias="clientId")
    business_id: int = Field(alias="businessId")
    client_email: Optional[str] = Field(default=None, alias="clientEmail")
    client_phone: Optional[str] = Field(default=None, alias="clientPhone")
    client_address: Optional[str] = Field(default=None, alias="clientAddress")
    status: InvoiceStatus = InvoiceStatus.DRAFT
    issue_date: date = Field(alias="issueDate")
    due_date: date = Field(alias="dueDate")
    currency: str = "USD"
    subtotal: float
    total_tax: float = Field(alias="totalTax")
    discount: float = 0.0
    total: float
    balance: float
    notes: Optional[str] = None
    terms: Optional[str] = None
    tax_mode: TaxMode = Field(default=TaxMode.NONE, alias="taxMode")
    tax_name: Optional[str] = Field(default=None, alias="taxName")
    tax_percentage: Optional[float] = Field(default=None, alias="taxPercentage")
    discount_type: DiscountType = Field(default=DiscountType.NONE, alias="discountType")
    items: List[InvoiceLine] = Field(default_factory=list)


class InvoiceRecord(InvoiceCreate):
    id: int
    sequence: int
    invoice_number: str = Field(alias="invoiceNumber")
    created_at: str = Field(alias="createdAt")


def format_invoice_number(sequence: int) -> str:
    return f"INV-{sequence:05d}"
