"""Configuration for gospel-library-mcp."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Find project root (where .env is located)
# This module is in src/gospel_library_mcp/config/base.py
# Project root is 3 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent


class Settings(BaseSettings):
    """Global settings, loaded from environment variables or .env"""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_prefix="GOSPEL_LIBRARY_",
        case_sensitive=False,
    )

    # Gospel Library platform
    base_url: str = Field(
        default="https://www.churchofjesuschrist.org",
        description="Base URL of the content platform",
    )
    search_proxy_path: str = Field(
        default="/search/proxy",
        description="Path prefix of the search proxy endpoints",
    )
    content_api_path: str = Field(
        default="/study/api/v3/language-pages/type/content",
        description="Path of the content page API",
    )
    default_lang: str = Field(
        default="eng", description="Default language code for all requests"
    )

    # HTTP
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    user_agent: str = Field(
        default="gospel-library-mcp/1.0", description="User-Agent header"
    )

    # Search defaults
    conference_years_back: int = Field(
        default=10,
        description="Years covered by conference search when no range is given",
    )

    # Server
    server_name: str = Field(
        default="Gospel Library", description="Name of the MCP Server"
    )

    @property
    def search_proxy_url(self) -> str:
        """Absolute URL of the search proxy."""
        return f"{self.base_url.rstrip('/')}{self.search_proxy_path}"

    @property
    def content_api_url(self) -> str:
        """Absolute URL of the content page API."""
        return f"{self.base_url.rstrip('/')}{self.content_api_path}"


# Singleton instance
settings = Settings()
