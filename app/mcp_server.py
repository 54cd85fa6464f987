"""MCP transport for the voice invoice tools.

Each tool takes the ``session_id`` returned by ``start_session`` so that a
voice runtime speaking MCP can drive the same session state as the HTTP
routes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from app.dependencies.services import build_session_toolkit
from app.schemas.records import QuantityUnit
from app.services.exceptions import SessionNotFoundError, ToolError
from app.services.session_store import invoice_sessions
from app.tools.registry import TOOLS_BY_NAME, invoke_tool

log = logging.getLogger("voice_invoice.mcp")

mcp = FastMCP("voice_invoice")


async def _run_tool(session_id: str, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    log.debug("%s session=%s input=%s", name, session_id, arguments)
    try:
        session = invoice_sessions.get(session_id)
    except SessionNotFoundError as exc:
        return {"error": "NotFound", "message": str(exc)}

    toolkit = build_session_toolkit(session)
    try:
        result = await invoke_tool(toolkit, name, arguments)
    except ToolError as exc:
        log.info("%s failed for session %s: %s", name, session_id, exc.user_message)
        return exc.to_dict()
    out = result.model_dump(mode="json")
    log.debug("%s output=%s", name, out)
    return out


@mcp.tool(name="start_session", description="Open a voice invoice session for a workspace")
async def start_session(workspace_id: int) -> Dict[str, Any]:
    session_id = invoice_sessions.create(workspace_id)
    log.info("MCP session %s opened for workspace %s", session_id, workspace_id)
    return {"sessionId": session_id, "workspaceId": workspace_id}


@mcp.tool(name="end_session", description="Discard a voice invoice session and its draft")
async def end_session(session_id: str) -> Dict[str, Any]:
    return {"discarded": invoice_sessions.discard(session_id)}


@mcp.tool(name="listBusinesses", description=TOOLS_BY_NAME["listBusinesses"].description)
async def list_businesses(session_id: str) -> Dict[str, Any]:
    return await _run_tool(session_id, "listBusinesses", {})


@mcp.tool(name="selectBusiness", description=TOOLS_BY_NAME["selectBusiness"].description)
async def select_business(session_id: str, business_id: int) -> Dict[str, Any]:
    return await _run_tool(session_id, "selectBusiness", {"business_id": business_id})


@mcp.tool(name="lookupCustomer", description=TOOLS_BY_NAME["lookupCustomer"].description)
async def lookup_customer(session_id: str, query: str) -> Dict[str, Any]:
    return await _run_tool(session_id, "lookupCustomer", {"query": query})


@mcp.tool(name="selectCustomer", description=TOOLS_BY_NAME["selectCustomer"].description)
async def select_customer(session_id: str, customer_id: int) -> Dict[str, Any]:
    return await _run_tool(session_id, "selectCustomer", {"customer_id": customer_id})


@mcp.tool(name="addInvoiceItem", description=TOOLS_BY_NAME["addInvoiceItem"].description)
async def add_invoice_item(
    session_id: str,
    description: str,
    quantity: float,
    unit_price: float,
    quantity_unit: QuantityUnit = QuantityUnit.UNITS,
) -> Dict[str, Any]:
    return await _run_tool(
        session_id,
        "addInvoiceItem",
        {
            "description": description,
            "quantity": quantity,
            "unit_price": unit_price,
            "quantity_unit": quantity_unit,
        },
    )


@mcp.tool(name="createInvoice", description=TOOLS_BY_NAME["createInvoice"].description)
async def create_invoice(
    session_id: str, due_date: str, notes: Optional[str] = None
) -> Dict[str, Any]:
    return await _run_tool(session_id, "createInvoice", {"due_date": due_date, "notes": notes})


@mcp.tool(name="countClients", description=TOOLS_BY_NAME["countClients"].description)
async def count_clients(session_id: str) -> Dict[str, Any]:
    return await _run_tool(session_id, "countClients", {})


@mcp.tool(name="countInvoices", description=TOOLS_BY_NAME["countInvoices"].description)
async def count_invoices(session_id: str) -> Dict[str, Any]:
    return await _run_tool(session_id, "countInvoices", {})


@mcp.tool(name="ping", description="Health check")
async def ping(message: str) -> str:
    log.debug("ping %s", message)
    return f"pong: {message}"
