"""Tools the voice agent calls to build and commit an invoice.

The LLM driving a voice session is treated as an untrusted caller: it may
invoke these tools in any order, repeat a call within the same turn, or pass
ids it remembered from another conversation. Each tool therefore re-checks
its own preconditions, and the two mutating operations that an LLM tends to
repeat (adding an item and creating the invoice) collapse duplicates.

Tool calls of one session arrive sequentially, so the session state is not
locked. The only suspension points are calls into the persistence services.
"""

from __future__ import annotations

import functools
import logging
import time
from datetime import date
from typing import Callable, Optional

from app.schemas.records import (
    BusinessRecord,
    ClientRecord,
    InvoiceCreate,
    InvoiceLine,
    QuantityUnit,
    TaxMode,
)
from app.schemas.session import DraftInvoice, DraftLineItem, InvoiceSessionData, LastCreatedInvoice
from app.schemas.tools import (
    AddInvoiceItemResult,
    BusinessSummary,
    CountResult,
    CreateInvoiceResult,
    CustomerSummary,
    ListBusinessesResult,
    LookupCustomerResult,
    SelectBusinessResult,
    SelectCustomerResult,
)
from app.services.business import BusinessDirectoryService
from app.services.clients import ClientDirectoryService
from app.services.exceptions import (
    NotFoundError,
    PreconditionError,
    ToolError,
    UpstreamUnavailableError,
    ValidationFailedError,
)
from app.services.idempotency import build_invoice_idempotency_key
from app.services.invoice import InvoiceService
from app.services.speech import format_email_for_speech, pluralize

logger = logging.getLogger(__name__)

MIN_DUE_DATE_YEAR = 2000


def tool_boundary(fallback_message: str):
    """Turn anything that is not already a ToolError into UpstreamUnavailable."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self: "InvoiceSessionToolkit", *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except ToolError:
                raise
            except Exception as exc:
                logger.exception(
                    "Tool %s failed for workspace %s",
                    func.__name__,
                    self.session.workspace_id,
                )
                raise UpstreamUnavailableError(fallback_message, cause=exc) from exc

        return wrapper

    return decorator


def parse_due_date(raw: str, today: date) -> date:
    """Parse ``YYYY-MM-DD``, substituting the current year when it is implausible.

    Voice transcription often drops or garbles the year ("the 31st of
    December"), so a missing year or one before 2000 becomes ``today.year``.
    Raises ``ValueError`` when the value cannot be read as a date.
    """

    parts = raw.strip().split("-")
    if len(parts) != 3:
        raise ValueError(f"Expected YYYY-MM-DD, got {raw!r}")
    try:
        year = int(parts[0])
    except ValueError:
        year = 0
    month = int(parts[1])
    day = int(parts[2])
    if year < MIN_DUE_DATE_YEAR:
        year = today.year
    return date(year, month, day)


def _money(value: float) -> str:
    return f"{value:.2f}"


def _item_name(description: str) -> str:
    return " ".join(description.split(" ")[:3])


class InvoiceSessionToolkit:
    """The tool surface of one voice session.

    Instances are cheap; build one per tool call or keep one per session.
    All state lives in the injected :class:`InvoiceSessionData`.
    """

    def __init__(
        self,
        session: InvoiceSessionData,
        *,
        clients: ClientDirectoryService,
        businesses: BusinessDirectoryService,
        invoices: InvoiceService,
        currency: str = "USD",
        lookup_limit: int = 5,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.session = session
        self._clients = clients
        self._businesses = businesses
        self._invoices = invoices
        self._currency = currency
        self._lookup_limit = lookup_limit
        self._today = today

    # ---------- Customers ----------
    @tool_boundary("Unable to retrieve customers")
    async def lookup_customer(self, query: str) -> LookupCustomerResult:
        customers = await self._clients.search(
            self.session.workspace_id, query, self._lookup_limit
        )
        if not customers:
            return LookupCustomerResult(
                found=False,
                message=(
                    "No customers found. Please create the customer in the main "
                    "application first, then try again."
                ),
            )

        lines = "\n".join(
            f"- {customer.name}"
            + (f" ({format_email_for_speech(customer.email)})" if customer.email else "")
            for customer in customers
        )
        return LookupCustomerResult(
            found=True,
            customers=[
                CustomerSummary(
                    id=customer.id,
                    name=customer.name,
                    email=customer.email,
                    phone=customer.phone,
                    business_name=customer.business_name,
                )
                for customer in customers
            ],
            message=f"Found {len(customers)} customer(s):\n{lines}\nPlease confirm which one.",
        )

    @tool_boundary("Unable to select customer. Please try again.")
    async def select_customer(self, customer_id: int) -> SelectCustomerResult:
        customer = await self._clients.get(self.session.workspace_id, customer_id)
        if customer is None:
            raise NotFoundError(
                "Customer not found or does not belong to this workspace. "
                "Please search again using lookupCustomer."
            )

        draft = self.session.ensure_draft()
        draft.customer_id = customer.id
        logger.info(
            "Workspace %s selected customer %s", self.session.workspace_id, customer.id
        )

        message = f'Customer "{customer.name}" selected for this invoice.'
        if customer.email:
            message += f" Email: {format_email_for_speech(customer.email)}"
        return SelectCustomerResult(
            customer_id=customer.id,
            customer_name=customer.name,
            customer_email=customer.email,
            message=message,
        )

    # ---------- Businesses ----------
    @tool_boundary("Unable to list businesses. Please try again.")
    async def list_businesses(self) -> ListBusinessesResult:
        businesses = await self._businesses.list(self.session.workspace_id)
        if not businesses:
            return ListBusinessesResult(
                found=False,
                message="No businesses found. Please set up a business first in the main application.",
            )

        lines = "\n".join(
            f"- {business.name}{' (Default)' if business.is_default else ''} (ID: {business.id})"
            for business in businesses
        )
        return ListBusinessesResult(
            found=True,
            businesses=[
                BusinessSummary(id=b.id, name=b.name, is_default=b.is_default)
                for b in businesses
            ],
            message=(
                f"Found {len(businesses)} business(es):\n{lines}\n"
                "Please select which business to use for this invoice."
            ),
        )

    @tool_boundary("Unable to select business. Please try again.")
    async def select_business(self, business_id: int) -> SelectBusinessResult:
        business = await self._businesses.get(self.session.workspace_id, business_id)
        if business is None:
            raise NotFoundError(
                "Business not found or does not belong to this workspace. "
                "Please search again using listBusinesses."
            )

        # Tax defaults are resolved later, when items are added and at commit.
        draft = self.session.ensure_draft()
        draft.business_id = business.id
        logger.info(
            "Workspace %s selected business %s", self.session.workspace_id, business.id
        )
        return SelectBusinessResult(
            business_id=business.id,
            business_name=business.name,
            message=f'Business "{business.name}" selected for this invoice.',
        )

    # ---------- Line items ----------
    @tool_boundary("Unable to add the item. Please try again.")
    async def add_invoice_item(
        self,
        description: str,
        quantity: float,
        unit_price: float,
        quantity_unit: QuantityUnit | str = QuantityUnit.UNITS,
    ) -> AddInvoiceItemResult:
        try:
            quantity_unit = QuantityUnit(quantity_unit)
        except ValueError as exc:
            raise ValidationFailedError(
                "Quantity unit must be one of DAYS, HOURS or UNITS."
            ) from exc
        if quantity <= 0 or unit_price <= 0:
            raise ValidationFailedError(
                "Quantity and unit price must both be greater than zero."
            )

        draft = self.session.ensure_draft()
        item_total = quantity * unit_price

        if any(
            item.matches(description, quantity, unit_price, quantity_unit)
            for item in draft.items
        ):
            running_total = sum(item.total for item in draft.items)
            logger.info(
                "Ignoring repeated item '%s' in workspace %s",
                description,
                self.session.workspace_id,
            )
            return AddInvoiceItemResult(
                item_number=len(draft.items),
                item_total=_money(item_total),
                running_total=_money(running_total),
                message=f"Item already added. Current total: ${_money(running_total)}",
            )

        item = DraftLineItem(
            name=_item_name(description),
            description=description,
            quantity=quantity,
            quantity_unit=quantity_unit,
            unit_price=unit_price,
            total=item_total,
        )
        # Appended before the first await so a repeated call that interleaves
        # with this one sees the item and is treated as a duplicate.
        draft.items.append(item)
        draft.recompute_totals()
        item_number = len(draft.items)

        if draft.business_id:
            try:
                business = await self._businesses.get(
                    self.session.workspace_id, draft.business_id
                )
            except Exception:
                # The item is already recorded; its tax flags stay unset.
                logger.exception(
                    "Tax lookup for business %s failed in workspace %s",
                    draft.business_id,
                    self.session.workspace_id,
                )
                business = None
            if business is not None and business.default_tax_mode == TaxMode.BY_TOTAL:
                # Informational only: invoice tax is computed from the subtotal at commit.
                item.vat_enabled = True
                item.tax = float(business.default_tax_percentage or 0.0)

        return AddInvoiceItemResult(
            item_number=item_number,
            item_total=_money(item_total),
            running_total=_money(draft.total),
            message=f"Added item {item_number}. Current total: ${_money(draft.total)}",
        )

    # ---------- Commit ----------
    @tool_boundary("Unable to create the invoice. Please try again.")
    async def create_invoice(
        self, due_date: str, notes: Optional[str] = None
    ) -> CreateInvoiceResult:
        workspace_id = self.session.workspace_id
        draft = self._draft_for_commit(due_date, notes)
        self._check_ready(draft)

        idempotency_key = build_invoice_idempotency_key(draft, due_date, notes)
        last = self.session.last_created_invoice
        if last is not None and last.idempotency_key == idempotency_key:
            existing = await self._invoices.get(workspace_id, last.id)
            if existing is not None:
                logger.info(
                    "Repeated create for invoice %s in workspace %s",
                    existing.invoice_number,
                    workspace_id,
                )
                return CreateInvoiceResult(
                    invoice_id=existing.id,
                    invoice_number=existing.invoice_number,
                    total=_money(existing.total),
                    message=(
                        f"Invoice {existing.invoice_number} already created. "
                        f"Total: ${_money(existing.total)}"
                    ),
                )
            logger.warning(
                "Invoice %s was deleted; creating it again for workspace %s",
                last.invoice_number,
                workspace_id,
            )

        business = await self._businesses.get(workspace_id, draft.business_id)
        if business is None:
            raise NotFoundError(
                "Selected business not found. Please select a business again."
            )

        customer = await self._clients.get(workspace_id, draft.customer_id)
        if customer is None:
            raise NotFoundError(
                "Selected customer not found. Please search again using lookupCustomer."
            )

        today = self._today()
        try:
            parsed_due_date = parse_due_date(due_date, today)
        except ValueError as exc:
            raise ValidationFailedError(
                "Invalid due date format. Please provide date in YYYY-MM-DD "
                "format (e.g., 2026-12-31)."
            ) from exc
        if parsed_due_date < today:
            raise ValidationFailedError(
                "Due date cannot be in the past. Please provide a future date."
            )

        draft.due_date = parsed_due_date
        draft.notes = notes
        payload = self._build_invoice_payload(draft, business, customer, today)
        invoice = await self._invoices.create(payload)

        self.session.last_created_invoice = LastCreatedInvoice(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            total=invoice.total,
            created_at=time.time(),
            idempotency_key=idempotency_key,
            committed_draft=draft.model_copy(deep=True),
        )
        self.session.current_invoice = None
        logger.info(
            "Created invoice %s (id=%s) for workspace %s",
            invoice.invoice_number,
            invoice.id,
            workspace_id,
        )

        return CreateInvoiceResult(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            total=_money(invoice.total),
            message=(
                f"Invoice {invoice.invoice_number} created successfully! "
                f"Total: ${_money(invoice.total)}"
            ),
        )

    def _draft_for_commit(self, due_date: str, notes: Optional[str]) -> Optional[DraftInvoice]:
        """Return the draft to commit.

        After a commit the draft is cleared, so a repeated createInvoice call
        would otherwise fail. When the request matches the invoice committed
        last, its snapshot stands in for the draft and the idempotency check
        returns that invoice.
        """

        draft = self.session.current_invoice
        last = self.session.last_created_invoice
        if draft is None and last is not None and last.committed_draft is not None:
            snapshot = last.committed_draft
            if build_invoice_idempotency_key(snapshot, due_date, notes) == last.idempotency_key:
                return snapshot.model_copy(deep=True)
        return draft

    @staticmethod
    def _check_ready(draft: Optional[DraftInvoice]) -> None:
        if draft is None:
            raise PreconditionError(
                "No invoice to create. Please start over by selecting a customer and adding items."
            )
        if not draft.customer_id:
            raise PreconditionError("No customer selected. Please select a customer first.")
        if not draft.business_id:
            raise PreconditionError(
                "No business selected. Please select a business first using selectBusiness."
            )
        if not draft.items:
            raise PreconditionError(
                "Cannot create invoice without line items. Please add at least one item."
            )

    def _build_invoice_payload(
        self,
        draft: DraftInvoice,
        business: BusinessRecord,
        customer: ClientRecord,
        today: date,
    ) -> InvoiceCreate:
        tax_mode = business.default_tax_mode or TaxMode.NONE
        tax_name = business.default_tax_name if tax_mode == TaxMode.BY_TOTAL else None
        tax_percentage = (
            float(business.default_tax_percentage)
            if tax_mode == TaxMode.BY_TOTAL and business.default_tax_percentage
            else None
        )

        subtotal = round(draft.subtotal, 2)
        total_tax = 0.0
        total = subtotal
        if tax_mode == TaxMode.BY_TOTAL and tax_percentage:
            total_tax = round(subtotal * tax_percentage / 100, 2)
            total = round(subtotal + total_tax, 2)

        return InvoiceCreate(
            workspace_id=self.session.workspace_id,
            client_id=customer.id,
            business_id=business.id,
            client_email=customer.email,
            client_phone=customer.phone,
            client_address=customer.address,
            issue_date=today,
            due_date=draft.due_date,
            currency=self._currency,
            subtotal=subtotal,
            total_tax=total_tax,
            discount=0.0,
            total=total,
            balance=total,
            notes=draft.notes or business.default_notes or None,
            terms=business.default_terms or None,
            tax_mode=tax_mode,
            tax_name=tax_name,
            tax_percentage=tax_percentage,
            items=[InvoiceLine(**item.model_dump()) for item in draft.items],
        )

    # ---------- Queries ----------
    @tool_boundary("Unable to count clients. Please try again.")
    async def count_clients(self) -> CountResult:
        count = await self._clients.count(self.session.workspace_id)
        return CountResult(
            count=count,
            message=f"You have {count} active {pluralize(count, 'client')}.",
        )

    @tool_boundary("Unable to count invoices. Please try again.")
    async def count_invoices(self) -> CountResult:
        count = await self._invoices.count(self.session.workspace_id)
        return CountResult(
            count=count,
            message=f"You have {count} {pluralize(count, 'invoice')}.",
        )
