from __future__ import annotations

import itertools
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

from app.schemas.records import (
    BusinessRecord,
    ClientRecord,
    InvoiceCreate,
    InvoiceLine,
    InvoiceRecord,
    TaxMode,
    format_invoice_number,
)

DEMO_WORKSPACE_ID = 1
OTHER_WORKSPACE_ID = 2


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ClientRepository:
    def __init__(self) -> None:
        self._clients: Dict[int, ClientRecord] = {}

    def add(self, record: ClientRecord) -> None:
        self._clients[record.id] = record

    async def search(self, workspace_id: int, query: str, limit: int) -> List[ClientRecord]:
        needle = query.strip().lower()
        matches = [
            client
            for client in sorted(self._clients.values(), key=lambda c: c.id)
            if client.workspace_id == workspace_id
            and (
                needle in client.name.lower()
                or (client.email is not None and needle in client.email.lower())
            )
        ]
        return [client.model_copy() for client in matches[:limit]]

    async def get(self, workspace_id: int, client_id: int) -> Optional[ClientRecord]:
        client = self._clients.get(client_id)
        if client is None or client.workspace_id != workspace_id:
            return None
        return client.model_copy()

    async def count(self, workspace_id: int) -> int:
        return sum(1 for client in self._clients.values() if client.workspace_id == workspace_id)


class BusinessRepository:
    def __init__(self) -> None:
        self._businesses: Dict[int, BusinessRecord] = {}

    def add(self, record: BusinessRecord) -> None:
        self._businesses[record.id] = record

    async def list(self, workspace_id: int) -> List[BusinessRecord]:
        businesses = [
            business
            for business in self._businesses.values()
            if business.workspace_id == workspace_id
        ]
        businesses.sort(key=lambda b: (not b.is_default, b.sequence))
        return [business.model_copy() for business in businesses]

    async def get(self, workspace_id: int, business_id: int) -> Optional[BusinessRecord]:
        business = self._businesses.get(business_id)
        if business is None or business.workspace_id != workspace_id:
            return None
        return business.model_copy()


class InvoiceRepository:
    def __init__(self) -> None:
        self._counter = itertools.count(500)
        self._invoices: Dict[int, InvoiceRecord] = {}

    def add(self, record: InvoiceRecord) -> None:
        self._invoices[record.id] = record

    def _next_sequence(self, workspace_id: int) -> int:
        sequences = [
            invoice.sequence
            for invoice in self._invoices.values()
            if invoice.workspace_id == workspace_id
        ]
        return max(sequences, default=0) + 1

    async def create(self, payload: InvoiceCreate) -> InvoiceRecord:
        # Sequence read and insert happen without yielding to the event loop,
        # so concurrent commits in one workspace never share a sequence.
        sequence = self._next_sequence(payload.workspace_id)
        record = InvoiceRecord(
            **payload.model_dump(),
            id=next(self._counter),
            sequence=sequence,
            invoice_number=format_invoice_number(sequence),
            created_at=_utc_now_iso(),
        )
        self._invoices[record.id] = record
        return record.model_copy(deep=True)

    async def get(self, workspace_id: int, invoice_id: int) -> Optional[InvoiceRecord]:
        invoice = self._invoices.get(invoice_id)
        if invoice is None or invoice.workspace_id != workspace_id:
            return None
        return invoice.model_copy(deep=True)

    async def count(self, workspace_id: int) -> int:
        return sum(1 for invoice in self._invoices.values() if invoice.workspace_id == workspace_id)

    async def delete(self, invoice_id: int) -> bool:
        return self._invoices.pop(invoice_id, None) is not None


@dataclass
class MockDataStore:
    clients: ClientRepository
    businesses: BusinessRepository
    invoices: InvoiceRepository


def _seed(store: MockDataStore) -> None:
    for business in (
        BusinessRecord(
            id=4,
            workspace_id=DEMO_WORKSPACE_ID,
            sequence=1,
            name="Northwind Consulting",
            is_default=False,
            default_tax_mode=TaxMode.NONE,
        ),
        BusinessRecord(
            id=3,
            workspace_id=DEMO_WORKSPACE_ID,
            sequence=2,
            name="Northwind Studio",
            is_default=True,
            default_tax_mode=TaxMode.BY_TOTAL,
            default_tax_name="VAT",
            default_tax_percentage=19.0,
            default_notes="Thank you for your business.",
            default_terms="Payment due within 30 days.",
        ),
        BusinessRecord(
            id=9,
            workspace_id=OTHER_WORKSPACE_ID,
            sequence=1,
            name="Globex Ltd",
            is_default=True,
            default_tax_mode=TaxMode.BY_PRODUCT,
        ),
    ):
        store.businesses.add(business)

    for client in (
        ClientRecord(
            id=5,
            workspace_id=DEMO_WORKSPACE_ID,
            sequence=1,
            name="Santiago Restrepo",
            email="santiago@restrepo.co",
            phone="+573011234567",
            address="Calle 10 #43-12, Medellin",
        ),
        ClientRecord(
            id=6,
            workspace_id=DEMO_WORKSPACE_ID,
            sequence=2,
            name="Maria Lopez",
            email="maria.lopez@example.com",
            business_name="Lopez Bakery",
        ),
        ClientRecord(
            id=7,
            workspace_id=DEMO_WORKSPACE_ID,
            sequence=3,
            name="John Doe",
            email="john.doe@sub.example.co",
            phone="+14155550123",
            address="1 Market St, San Francisco",
        ),
        ClientRecord(
            id=8,
            workspace_id=DEMO_WORKSPACE_ID,
            sequence=4,
            name="Johnny Walker",
        ),
        ClientRecord(
            id=11,
            workspace_id=OTHER_WORKSPACE_ID,
            sequence=1,
            name="Jane Roe",
            email="jane@globex.io",
        ),
    ):
        store.clients.add(client)

    # One historical invoice so new invoices in the demo workspace start at INV-00002.
    store.invoices.add(
        InvoiceRecord(
            id=1,
            workspace_id=DEMO_WORKSPACE_ID,
            client_id=5,
            business_id=3,
            sequence=1,
            invoice_number=format_invoice_number(1),
            issue_date=date(2025, 1, 15),
            due_date=date(2025, 2, 15),
            subtotal=1200.0,
            total_tax=228.0,
            total=1428.0,
            balance=1428.0,
            tax_mode=TaxMode.BY_TOTAL,
            tax_name="VAT",
            tax_percentage=19.0,
            items=[
                InvoiceLine(
                    name="Website redesign",
                    description="Website redesign",
                    quantity=1,
                    unit_price=1200.0,
                    total=1200.0,
                )
            ],
            created_at="2025-01-15T10:00:00+00:00",
        )
    )


_mock_store: Optional[MockDataStore] = None


def get_mock_store() -> MockDataStore:
    global _mock_store
    if _mock_store is None:
        _mock_store = MockDataStore(
            clients=ClientRepository(),
            businesses=BusinessRepository(),
            invoices=InvoiceRepository(),
        )
        _seed(_mock_store)
    return _mock_store


def reset_mock_store() -> None:
    global _mock_store
    _mock_store = None
