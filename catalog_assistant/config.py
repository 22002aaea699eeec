"""Service configuration sourced from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the model endpoint and the catalog tool provider."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    # Model endpoint
    anthropic_api_key: str | None = Field(default=None, validation_alias="ANTHROPIC_API_KEY")
    anthropic_base_url: str | None = Field(default=None, validation_alias="ANTHROPIC_BASE_URL")
    model: str = Field(default="claude-3-haiku-20240307", validation_alias="ANTHROPIC_MODEL")
    max_tokens: int = Field(default=1024, validation_alias="ANTHROPIC_MAX_TOKENS")

    # Catalog tool provider (MCP over HTTP)
    catalog_mcp_url: str = Field(default="https://home.atlan.com/mcp/api-key", validation_alias="CATALOG_MCP_URL")
    catalog_api_key: str | None = Field(default=None, validation_alias="CATALOG_API_KEY")
    catalog_http_timeout: float = Field(default=30.0, validation_alias="CATALOG_HTTP_TIMEOUT")

    # Agent loop
    max_iterations: int = Field(default=5, ge=1, validation_alias="MAX_ITERATIONS")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
