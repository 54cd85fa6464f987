from functools import lru_cache
from typing import Annotated, List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from ``VOICE_INVOICE_*`` variables."""

    app_name: str = "Voice Invoice Agent"
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    # Invoicing backend. Without a base URL the seeded in-memory store is used.
    backend_base_url: AnyHttpUrl | None = None
    backend_timeout: float = Field(default=10.0, gt=0)
    backend_token: str | None = None
    use_mock_data: bool = True

    currency: str = "USD"
    customer_lookup_limit: int = Field(default=5, ge=1, le=25)

    # Gemini model behind the LangChain agent
    google_api_key: str | None = None
    agent_google_model: str = "gemini-2.5-flash"
    agent_temperature: float = Field(default=0.0, ge=0.0, le=2.0)

    model_config = SettingsConfigDict(env_prefix="VOICE_INVOICE_", case_sensitive=False)

    @field_validator("cors_origins", mode="before")
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
