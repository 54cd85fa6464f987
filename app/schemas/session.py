from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.records import DiscountType, QuantityUnit


class DraftLineItem(BaseModel):
    name: str
    description: str
    quantity: float
    quantity_unit: QuantityUnit = QuantityUnit.UNITS
    unit_price: float
    discount: float = 0.0
    discount_type: DiscountType = DiscountType.NONE
    tax: float = 0.0
    vat_enabled: bool = False
    # quantity * unit_price; tax and discount are applied at commit time
    total: float

    def matches(
        self,
        description: str,
        quantity: float,
        unit_price: float,
        quantity_unit: QuantityUnit,
    ) -> bool:
        return (
            self.description == description
            and self.quantity == quantity
            and self.unit_price == unit_price
            and self.quantity_unit == quantity_unit
        )


class DraftInvoice(BaseModel):
    """The invoice being assembled during a voice conversation."""

    customer_id: Optional[int] = None
    business_id: Optional[int] = None
    items: List[DraftLineItem] = Field(default_factory=list)
    subtotal: float = 0.0
    total_tax: float = 0.0
    discount: float = 0.0
    total: float = 0.0
    due_date: Optional[date] = None
    notes: Optional[str] = None

    def recompute_totals(self) -> None:
        self.subtotal = sum(item.total for item in self.items)
        self.total = self.subtotal


class LastCreatedInvoice(BaseModel):
    id: int
    invoice_number: str
    total: float
    created_at: float
    idempotency_key: str
    committed_draft: Optional[DraftInvoice] = None


class InvoiceSessionData(BaseModel):
    """Per-connection state shared by every tool call of one voice session."""

    workspace_id: int = Field(frozen=True)
    current_invoice: Optional[DraftInvoice] = None
    last_created_invoice: Optional[LastCreatedInvoice] = None

    def ensure_draft(self) -> DraftInvoice:
        if self.current_invoice is None:
            self.current_invoice = DraftInvoice()
        return self.current_invoice
