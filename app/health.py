from fastapi import APIRouter

from app.services.session_store import invoice_sessions

router = APIRouter()


@router.get("/health")
def health():
    return {"ok": True, "activeSessions": len(invoice_sessions)}


@router.get("/mcp/info")
def mcp_info():
    return {"status": "ok", "transport": "streamable-http", "path": "/mcp"}
