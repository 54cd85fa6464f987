import asyncio
import json
import os
import sys
from datetime import date

import httpx
import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.clients.backend import BackendServiceClient
from app.schemas.records import InvoiceCreate, InvoiceLine, TaxMode
from app.schemas.session import InvoiceSessionData
from app.services.business import BusinessDirectoryService
from app.services.clients import ClientDirectoryService
from app.services.exceptions import DownstreamServiceError, UpstreamUnavailableError
from app.services.invoice import InvoiceService
from app.services.invoice_session import InvoiceSessionToolkit

BASE_URL = "http://backend.test/api"


class RecordingBackend:
    """Routes requests to canned responses and records them."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"detail": "not found"})
        status, body = self.routes[key]
        return httpx.Response(status, json=body)


def live_client(backend: RecordingBackend, token: str | None = None) -> BackendServiceClient:
    return BackendServiceClient(
        BASE_URL,
        use_mock_data=False,
        token=token,
        transport=httpx.MockTransport(backend),
    )


def test_live_client_search_parses_camel_case_records() -> None:
    backend = RecordingBackend(
        {
            ("GET", "/api/clients"): (
                200,
                [
                    {"id": 7, "workspaceId": 1, "name": "John Doe", "businessName": "Doe Inc"},
                    {"id": 8, "workspaceId": 1, "name": "Johnny Walker"},
                ],
            )
        }
    )
    service = ClientDirectoryService(live_client(backend, token="secret"))

    clients = asyncio.run(service.search(1, "john", limit=1))

    assert [c.name for c in clients] == ["John Doe"]
    assert clients[0].business_name == "Doe Inc"
    request = backend.requests[0]
    assert request.url.params["workspaceId"] == "1"
    assert request.url.params["query"] == "john"
    assert request.headers["Authorization"] == "Bearer secret"


def test_live_client_maps_404_to_missing_record() -> None:
    service = ClientDirectoryService(live_client(RecordingBackend({})))

    assert asyncio.run(service.get(1, 99)) is None


def test_live_client_wraps_server_errors() -> None:
    backend = RecordingBackend({("GET", "/api/clients/count"): (503, {"detail": "down"})})
    service = ClientDirectoryService(live_client(backend))

    with pytest.raises(DownstreamServiceError) as excinfo:
        asyncio.run(service.count(1))

    assert excinfo.value.status_code == 503


def test_live_client_wraps_transport_errors() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = BackendServiceClient(
        BASE_URL, use_mock_data=False, transport=httpx.MockTransport(refuse)
    )

    with pytest.raises(DownstreamServiceError) as excinfo:
        asyncio.run(client.get("/clients/count"))

    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.cause, httpx.ConnectError)


def test_live_business_list_puts_default_first() -> None:
    backend = RecordingBackend(
        {
            ("GET", "/api/businesses"): (
                200,
                [
                    {"id": 4, "workspaceId": 1, "sequence": 1, "name": "Consulting"},
                    {"id": 3, "workspaceId": 1, "sequence": 2, "name": "Studio", "isDefault": True},
                ],
            )
        }
    )
    service = BusinessDirectoryService(live_client(backend))

    businesses = asyncio.run(service.list(1))

    assert [b.id for b in businesses] == [3, 4]


def test_live_invoice_create_posts_camel_case_payload() -> None:
    created = {
        "id": 42,
        "workspaceId": 1,
        "clientId": 7,
        "businessId": 3,
        "sequence": 12,
        "invoiceNumber": "INV-00012",
        "createdAt": "2026-03-01T10:00:00+00:00",
        "issueDate": "2026-03-01",
        "dueDate": "2099-12-31",
        "subtotal": 500.0,
        "totalTax": 95.0,
        "total": 595.0,
        "balance": 595.0,
        "taxMode": "BY_TOTAL",
        "items": [],
    }
    backend = RecordingBackend({("POST", "/api/invoices"): (201, created)})
    service = InvoiceService(live_client(backend))
    payload = InvoiceCreate(
        workspace_id=1,
        client_id=7,
        business_id=3,
        issue_date=date(2026, 3, 1),
        due_date=date(2099, 12, 31),
        subtotal=500.0,
        total_tax=95.0,
        total=595.0,
        balance=595.0,
        tax_mode=TaxMode.BY_TOTAL,
        items=[
            InvoiceLine(
                name="Web design",
                description="Web design",
                quantity=5,
                unit_price=100.0,
                total=500.0,
            )
        ],
    )

    invoice = asyncio.run(service.create(payload))

    assert invoice.invoice_number == "INV-00012"
    body = json.loads(backend.requests[0].content)
    assert body["workspaceId"] == 1
    assert body["dueDate"] == "2099-12-31"
    assert body["taxMode"] == "BY_TOTAL"
    assert body["items"][0]["unitPrice"] == 100.0
    assert body["items"][0]["quantityUnit"] == "UNITS"


def test_backend_failure_is_reported_as_upstream_unavailable() -> None:
    backend = RecordingBackend({("GET", "/api/invoices/count"): (500, {"detail": "boom"})})
    client = live_client(backend)
    toolkit = InvoiceSessionToolkit(
        InvoiceSessionData(workspace_id=1),
        clients=ClientDirectoryService(client),
        businesses=BusinessDirectoryService(client),
        invoices=InvoiceService(client),
    )

    with pytest.raises(UpstreamUnavailableError) as excinfo:
        asyncio.run(toolkit.count_invoices())

    assert excinfo.value.user_message == "Unable to count invoices. Please try again."
    assert isinstance(excinfo.value.cause, DownstreamServiceError)


def test_client_without_base_url_falls_back_to_mock_mode() -> None:
    client = BackendServiceClient(None, use_mock_data=False)

    assert client.use_mock_data is True
    with pytest.raises(RuntimeError):
        asyncio.run(client.get("/clients"))
