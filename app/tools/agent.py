import logging
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from langchain.agents import create_agent
from langchain_google_genai import ChatGoogleGenerativeAI

from app.clients.backend import BackendServiceClient
from app.config import Settings, get_settings
from app.dependencies.services import (
    build_session_toolkit,
    get_backend_client,
    get_session_store,
)
from app.schemas.agent import (
    AgentRunRequest,
    AgentRunResponse,
    AgentToolsResponse,
    SessionCreateRequest,
    SessionSnapshot,
    ToolCallRecord,
    ToolErrorResponse,
)
from app.schemas.session import InvoiceSessionData
from app.services.agent_logging import AgentLoggingCallbackHandler, AgentRunCollector
from app.services.exceptions import (
    NotFoundError,
    PreconditionError,
    SessionNotFoundError,
    ToolError,
    UpstreamUnavailableError,
    ValidationFailedError,
)
from app.services.session_store import ConversationTurn, InvoiceSessionStore
from app.tools.registry import TOOL_SPECS, TOOLS_BY_NAME, invoke_tool
from langchain_tools.invoice_agent import INVOICE_AGENT_INSTRUCTIONS, build_invoice_tools

logger = logging.getLogger(__name__)

router = APIRouter()

_TOOL_ERROR_STATUS = (
    (NotFoundError, 404),
    (PreconditionError, 409),
    (ValidationFailedError, 422),
    (UpstreamUnavailableError, 502),
)


def tool_error_status(exc: ToolError) -> int:
    for error_type, status_code in _TOOL_ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _load_session(store: InvoiceSessionStore, session_id: str) -> InvoiceSessionData:
    try:
        return store.get(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _snapshot(session_id: str, session: InvoiceSessionData) -> SessionSnapshot:
    return SessionSnapshot(
        session_id=session_id,
        workspace_id=session.workspace_id,
        current_invoice=session.current_invoice,
        last_created_invoice=session.last_created_invoice,
    )


def _format_conversation_history(history: List[ConversationTurn]) -> str:
    lines: List[str] = []
    for turn in history:
        if turn.user:
            lines.append(f"User: {turn.user}")
        if turn.assistant:
            lines.append(f"Assistant: {turn.assistant}")
    return "\n".join(lines)


def _build_prompt_with_history(prompt: str, history: List[ConversationTurn]) -> str:
    if not history:
        return prompt
    history_text = _format_conversation_history(history)
    return (
        "You are continuing a voice conversation with the user. Use the previous "
        "messages to keep track of the invoice being built. The history is ordered "
        "from oldest to newest.\n\n"
        f"Conversation so far:\n{history_text}\n\n"
        f"Latest user request: {prompt}"
    )


def _final_text(result: Any) -> str:
    messages = result.get("messages") if isinstance(result, dict) else None
    if not messages:
        return ""
    content = getattr(messages[-1], "content", messages[-1])
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )
    return str(content)


@lru_cache(maxsize=4)
def _get_llm(model: str, temperature: float) -> ChatGoogleGenerativeAI:
    return ChatGoogleGenerativeAI(model=model, temperature=temperature)


def _get_agent(settings: Settings, tools: List) -> Any:
    if settings.google_api_key:
        os.environ.setdefault("GOOGLE_API_KEY", settings.google_api_key)
    elif not os.getenv("GOOGLE_API_KEY"):
        raise HTTPException(status_code=500, detail="GOOGLE_API_KEY not set on server")

    llm = _get_llm(settings.agent_google_model, settings.agent_temperature)
    return create_agent(model=llm, tools=tools, system_prompt=INVOICE_AGENT_INSTRUCTIONS)


@router.post("/sessions", response_model=SessionSnapshot, status_code=201)
async def start_session(
    req: SessionCreateRequest,
    store: InvoiceSessionStore = Depends(get_session_store),
):
    session_id = store.create(req.workspace_id)
    logger.info("Started voice session %s for workspace %s", session_id, req.workspace_id)
    return _snapshot(session_id, store.get(session_id))


@router.get("/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session(
    session_id: str,
    store: InvoiceSessionStore = Depends(get_session_store),
):
    return _snapshot(session_id, _load_session(store, session_id))


@router.delete("/sessions/{session_id}", status_code=204)
async def end_session(
    session_id: str,
    store: InvoiceSessionStore = Depends(get_session_store),
):
    if not store.discard(session_id):
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    logger.info("Ended voice session %s", session_id)


@router.post(
    "/sessions/{session_id}/tools/{tool_name}",
    responses={
        404: {"model": ToolErrorResponse},
        409: {"model": ToolErrorResponse},
        422: {"model": ToolErrorResponse},
        502: {"model": ToolErrorResponse},
    },
)
async def call_tool(
    session_id: str,
    tool_name: str,
    arguments: Optional[Dict[str, Any]] = Body(default=None),
    settings: Settings = Depends(get_settings),
    client: BackendServiceClient = Depends(get_backend_client),
    store: InvoiceSessionStore = Depends(get_session_store),
):
    """Run a single tool for a voice runtime that drives its own LLM."""

    if tool_name not in TOOLS_BY_NAME:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {tool_name}")
    session = _load_session(store, session_id)
    toolkit = build_session_toolkit(session, client, settings)
    try:
        result = await invoke_tool(toolkit, tool_name, arguments)
    except ToolError as exc:
        logger.info("Tool %s rejected for session %s: %s", tool_name, session_id, exc.user_message)
        return JSONResponse(status_code=tool_error_status(exc), content=exc.to_dict())
    return result.model_dump(mode="json")


@router.post("/sessions/{session_id}/run", response_model=AgentRunResponse)
async def run_agent(
    session_id: str,
    req: AgentRunRequest,
    settings: Settings = Depends(get_settings),
    client: BackendServiceClient = Depends(get_backend_client),
    store: InvoiceSessionStore = Depends(get_session_store),
):
    session = _load_session(store, session_id)
    toolkit = build_session_toolkit(session, client, settings)
    try:
        agent = _get_agent(settings, build_invoice_tools(toolkit))
        collector = AgentRunCollector()

        if req.reset_conversation:
            store.reset_history(session_id)
        history = store.get_history(session_id)
        prompt_with_history = _build_prompt_with_history(req.prompt, history)

        result = await agent.ainvoke(
            {"messages": [{"role": "user", "content": prompt_with_history}]},
            config={"callbacks": [AgentLoggingCallbackHandler(), collector]},
        )
        output = _final_text(result)
        store.append_turn(session_id, req.prompt, output)

        return AgentRunResponse(
            output=output,
            tool_calls=[ToolCallRecord(**call) for call in collector.tool_calls],
            session=_snapshot(session_id, session),
        )
    except HTTPException:
        raise
    except Exception as exc:  # pragma: no cover - runtime dependency
        logger.exception("Agent run failed for session %s", session_id)
        raise HTTPException(status_code=500, detail=f"Agent error: {exc}") from exc


@router.get("/tools", response_model=AgentToolsResponse)
async def list_agent_tools():
    return AgentToolsResponse(
        tools=[{"name": spec.name, "description": spec.description} for spec in TOOL_SPECS]
    )
