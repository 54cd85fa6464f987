from __future__ import annotations

import hashlib
import json
from typing import Optional

from app.schemas.session import DraftInvoice


def build_invoice_idempotency_key(
    draft: DraftInvoice, due_date: str, notes: Optional[str] = None
) -> str:
    """Return a SHA-256 fingerprint of the invoice the caller asked for.

    Only the requested content is hashed (customer, business, the ordered
    item descriptions/quantities/prices/units, due date and notes). Computed
    totals are left out so that rounding noise never splits one logical
    invoice into two keys.
    """

    content = json.dumps(
        {
            "customerId": draft.customer_id,
            "businessId": draft.business_id,
            "items": [
                {
                    "description": item.description,
                    "quantity": item.quantity,
                    "unitPrice": item.unit_price,
                    "quantityUnit": item.quantity_unit.value,
                }
                for item in draft.items
            ],
            "dueDate": due_date,
            "notes": notes or None,
        },
        separators=(",", ":"),
    )
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
