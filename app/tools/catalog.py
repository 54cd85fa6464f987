import logging
import os
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.clients.backend import BackendServiceClient
from app.config import Settings, get_settings
from app.dependencies.services import (
    build_session_toolkit,
    get_backend_client,
    get_session_store,
)
from app.schemas.agent import ToolCatalogEntry
from app.services.exceptions import SessionNotFoundError, ToolError
from app.services.session_store import InvoiceSessionStore
from app.tools.agent import tool_error_status
from app.tools.registry import TOOL_SPECS, TOOLS_BY_NAME, invoke_tool

logger = logging.getLogger(__name__)

router = APIRouter()


def require_api_key(x_api_key: Optional[str] = Header(None)):
    expected = os.getenv("VOICE_INVOICE_API_KEY")
    if expected and x_api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return True


@router.get("/tools/list", dependencies=[Depends(require_api_key)])
def tools_list():
    entries = [
        ToolCatalogEntry(
            name=spec.name,
            description=spec.description,
            input_schema=spec.input_schema(),
        )
        for spec in TOOL_SPECS
    ]
    return {"tools": [entry.model_dump(by_alias=True) for entry in entries]}


class ToolCall(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId", description="Voice session to act on")
    name: str = Field(..., description="Tool name from /tools/list")
    arguments: Dict[str, Any] = Field(default_factory=dict)


@router.post("/tools/call", dependencies=[Depends(require_api_key)])
async def tools_call(
    call: ToolCall,
    settings: Settings = Depends(get_settings),
    client: BackendServiceClient = Depends(get_backend_client),
    store: InvoiceSessionStore = Depends(get_session_store),
):
    if call.name not in TOOLS_BY_NAME:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {call.name}")
    try:
        session = store.get(call.session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    toolkit = build_session_toolkit(session, client, settings)
    try:
        result = await invoke_tool(toolkit, call.name, call.arguments)
    except ToolError as exc:
        logger.info("Tool call %s failed: %s", call.name, exc.user_message)
        return JSONResponse(status_code=tool_error_status(exc), content=exc.to_dict())
    return result.model_dump(mode="json")
