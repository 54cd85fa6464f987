from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.records import QuantityUnit


class CustomerSummary(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    business_name: Optional[str] = None


class BusinessSummary(BaseModel):
    id: int
    name: str
    is_default: bool = False


# ---------- Tool inputs ----------
class LookupCustomerInput(BaseModel):
    query: str = Field(..., min_length=1, description="Customer name or email to search")


class SelectCustomerInput(BaseModel):
    customer_id: int = Field(
        ..., description="The ID of the customer to select (from lookupCustomer results)"
    )


class ListBusinessesInput(BaseModel):
    pass


class SelectBusinessInput(BaseModel):
    business_id: int = Field(
        ..., gt=0, description="The ID of the business to select (from listBusinesses results)"
    )


class AddInvoiceItemInput(BaseModel):
    description: str = Field(..., min_length=1, description="Description of the product or service")
    quantity: float = Field(..., gt=0, description="Quantity of items")
    unit_price: float = Field(..., gt=0, description="Price per unit in dollars")
    quantity_unit: QuantityUnit = Field(
        default=QuantityUnit.UNITS, description="Unit of measurement for quantity"
    )


class CreateInvoiceInput(BaseModel):
    due_date: str = Field(..., description="Invoice due date in YYYY-MM-DD format")
    notes: Optional[str] = Field(default=None, description="Additional notes for the invoice")


class CountInput(BaseModel):
    pass


# ---------- Tool results ----------
class LookupCustomerResult(BaseModel):
    found: bool
    customers: Optional[List[CustomerSummary]] = None
    message: str


class SelectCustomerResult(BaseModel):
    success: bool = True
    customer_id: int
    customer_name: str
    customer_email: Optional[str] = None
    message: str


class ListBusinessesResult(BaseModel):
    found: bool
    businesses: Optional[List[BusinessSummary]] = None
    message: str


class SelectBusinessResult(BaseModel):
    success: bool = True
    business_id: int
    business_name: str
    message: str


class AddInvoiceItemResult(BaseModel):
    success: bool = True
    item_number: int
    item_total: str
    running_total: str
    message: str


class CreateInvoiceResult(BaseModel):
    success: bool = True
    invoice_id: int
    invoice_number: str
    total: str
    message: str


class CountResult(BaseModel):
    count: int
    message: str
