from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.routing import Mount

from app.config import get_settings
from app.dependencies.services import get_backend_client_cached

from app.tools.agent import router as agent_router
from app.tools.catalog import router as catalog_router
from app.mcp_server import mcp
from app.health import router as health_router


def configure_logging() -> None:
    """Ensure application logs use the INFO level by default."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(logging.INFO)


configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    settings_snapshot = settings.model_dump(
        exclude={"backend_token", "google_api_key"},
    )
    logger.info("Application settings on startup: %s", settings_snapshot)
    if not settings.use_mock_data and settings.backend_base_url is None:
        logger.warning("Live mode is enabled but VOICE_INVOICE_BACKEND_BASE_URL is not set")

    has_mcp = any(isinstance(r, Mount) and r.path == "/mcp" for r in app.routes)
    logger.debug("MCP mount present: %s", has_mcp)

    client = get_backend_client_cached()
    logger.info("Application startup complete.")

    try:
        yield
    finally:
        logger.info("Closing backend client connection.")
        await client.close()
        logger.info("Application shutdown complete.")


settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(agent_router, prefix="/agent")
app.include_router(catalog_router)  # Exposes /tools/list and /tools/call
app.include_router(health_router)

# Streamable HTTP transport for MCP clients
app.mount("/mcp", mcp.streamable_http_app())
