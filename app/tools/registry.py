"""Catalogue of the invoice tools exposed to language models.

Every transport (LangChain, MCP, plain HTTP) builds its tools from
``TOOL_SPECS`` so names, argument schemas and descriptions stay identical.
The descriptions are written for the model: they state when to call the
tool and what must already have happened.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Type

from pydantic import BaseModel, ValidationError

from app.schemas.tools import (
    AddInvoiceItemInput,
    CountInput,
    CreateInvoiceInput,
    ListBusinessesInput,
    LookupCustomerInput,
    SelectBusinessInput,
    SelectCustomerInput,
)
from app.services.exceptions import ValidationFailedError
from app.services.invoice_session import InvoiceSessionToolkit


@dataclass(frozen=True)
class ToolSpec:
    name: str
    method: str
    description: str
    input_model: Type[BaseModel]

    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()


TOOL_SPECS = (
    ToolSpec(
        name="listBusinesses",
        method="list_businesses",
        description=(
            "List all businesses available in the workspace. If exactly one business "
            "is returned, call selectBusiness with that ID immediately. If several are "
            "returned, ask the user which one to use."
        ),
        input_model=ListBusinessesInput,
    ),
    ToolSpec(
        name="selectBusiness",
        method="select_business",
        description=(
            "Select a business by ID to use for the current invoice. Use this after "
            "listBusinesses shows available businesses. This must be called before "
            "creating the invoice."
        ),
        input_model=SelectBusinessInput,
    ),
    ToolSpec(
        name="lookupCustomer",
        method="lookup_customer",
        description=(
            "Search for an existing customer by name or email in the database. If one "
            "customer is returned, call selectCustomer with that ID immediately. If "
            "multiple are returned, list them to the user and ask which one."
        ),
        input_model=LookupCustomerInput,
    ),
    ToolSpec(
        name="selectCustomer",
        method="select_customer",
        description=(
            "Select an existing customer by ID to associate with the current invoice. "
            "Use this after lookupCustomer. This must be called before creating the "
            "invoice. Afterwards, tell the user aloud which customer was selected."
        ),
        input_model=SelectCustomerInput,
    ),
    ToolSpec(
        name="addInvoiceItem",
        method="add_invoice_item",
        description="Add a line item to the current invoice being created.",
        input_model=AddInvoiceItemInput,
    ),
    ToolSpec(
        name="createInvoice",
        method="create_invoice",
        description=(
            "Save the complete invoice to the database after all details are "
            "confirmed. Requires a selected business, a selected customer and at "
            "least one line item."
        ),
        input_model=CreateInvoiceInput,
    ),
    ToolSpec(
        name="countClients",
        method="count_clients",
        description="Count the total number of active clients in the workspace.",
        input_model=CountInput,
    ),
    ToolSpec(
        name="countInvoices",
        method="count_invoices",
        description="Count the total number of invoices in the workspace.",
        input_model=CountInput,
    ),
)

TOOLS_BY_NAME: Dict[str, ToolSpec] = {spec.name: spec for spec in TOOL_SPECS}


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "input"
        problems.append(f"{location}: {error.get('msg')}")
    return "; ".join(problems)


async def invoke_tool(
    toolkit: InvoiceSessionToolkit,
    name: str,
    arguments: Mapping[str, Any] | None = None,
) -> BaseModel:
    """Validate ``arguments`` against the tool's schema and run it.

    Raises ``KeyError`` for an unknown tool name and
    :class:`ValidationFailedError` when the arguments do not fit the schema.
    """

    spec = TOOLS_BY_NAME[name]
    try:
        params = spec.input_model.model_validate(dict(arguments or {}))
    except ValidationError as exc:
        raise ValidationFailedError(
            f"Invalid arguments for {name}. {_describe_validation_error(exc)}"
        ) from exc
    method = getattr(toolkit, spec.method)
    return await method(**params.model_dump())
