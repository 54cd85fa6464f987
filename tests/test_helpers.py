import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.schemas.records import QuantityUnit, format_invoice_number
from app.schemas.session import DraftInvoice, DraftLineItem
from app.services.idempotency import build_invoice_idempotency_key
from app.services.speech import format_email_for_speech, pluralize


@pytest.mark.parametrize(
    "email, spoken",
    [
        ("user@gmail.com", "user at gmail dot com"),
        ("john.doe@sub.example.co", "john.doe at sub dot example dot co"),
        ("not-an-email", "not-an-email"),
        ("", ""),
        (None, ""),
    ],
)
def test_format_email_for_speech(email, spoken) -> None:
    assert format_email_for_speech(email) == spoken


def test_pluralize() -> None:
    assert pluralize(1, "invoice") == "invoice"
    assert pluralize(0, "invoice") == "invoices"
    assert pluralize(2, "business", "businesses") == "businesses"


def test_invoice_number_is_zero_padded() -> None:
    assert format_invoice_number(2) == "INV-00002"
    assert format_invoice_number(123456) == "INV-123456"


def _draft(*items: DraftLineItem, customer_id: int = 7, business_id: int = 3) -> DraftInvoice:
    draft = DraftInvoice(customer_id=customer_id, business_id=business_id, items=list(items))
    draft.recompute_totals()
    return draft


def _item(description: str = "Web design", quantity: float = 5, unit_price: float = 100) -> DraftLineItem:
    return DraftLineItem(
        name=description,
        description=description,
        quantity=quantity,
        unit_price=unit_price,
        total=quantity * unit_price,
    )


def test_idempotency_key_is_stable_sha256() -> None:
    key = build_invoice_idempotency_key(_draft(_item()), "2099-12-31")

    assert key == build_invoice_idempotency_key(_draft(_item()), "2099-12-31")
    assert len(key) == 64
    int(key, 16)


def test_idempotency_key_treats_empty_notes_as_missing() -> None:
    draft = _draft(_item())

    assert build_invoice_idempotency_key(draft, "2099-12-31", "") == (
        build_invoice_idempotency_key(draft, "2099-12-31", None)
    )


@pytest.mark.parametrize(
    "changed",
    [
        lambda: (_draft(_item(), customer_id=8), "2099-12-31", None),
        lambda: (_draft(_item(), business_id=4), "2099-12-31", None),
        lambda: (_draft(_item(quantity=6)), "2099-12-31", None),
        lambda: (_draft(_item(), _item("Hosting", 1, 20)), "2099-12-31", None),
        lambda: (_draft(_item()), "2099-12-30", None),
        lambda: (_draft(_item()), "2099-12-31", "Net 15"),
    ],
)
def test_idempotency_key_changes_with_content(changed) -> None:
    baseline = build_invoice_idempotency_key(_draft(_item()), "2099-12-31")

    assert build_invoice_idempotency_key(*changed()) != baseline


def test_idempotency_key_includes_quantity_unit() -> None:
    hours = _item()
    hours.quantity_unit = QuantityUnit.HOURS

    assert build_invoice_idempotency_key(_draft(hours), "2099-12-31") != (
        build_invoice_idempotency_key(_draft(_item()), "2099-12-31")
    )


def test_idempotency_key_ignores_computed_totals() -> None:
    draft = _draft(_item())
    key = build_invoice_idempotency_key(draft, "2099-12-31")

    draft.total = 999.0
    draft.total_tax = 12.0

    assert build_invoice_idempotency_key(draft, "2099-12-31") == key
