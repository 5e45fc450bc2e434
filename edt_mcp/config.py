"""Configuration for EDT MCP Server."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost",
    "http://127.0.0.1",
    "https://localhost",
    "https://127.0.0.1",
    "file://",
    "vscode-webview://",
]


class Settings(BaseSettings):
    """Server settings with environment variable support (EDT_MCP_*)."""

    # Listener
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8765, ge=0, le=65535)
    worker_threads: int = Field(default=4, ge=1, le=64)

    # Application
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Server identity reported by initialize and GET /mcp
    server_name: str = Field(default="edt-mcp-server")
    server_version: str = Field(default=__version__)
    server_author: str = Field(default="DitriX")
    edt_version: str = Field(default="unknown")

    # Origin prefixes accepted on /mcp (DNS rebinding protection)
    allowed_origins: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))

    # Result limits offered to tools
    default_limit: int = Field(default=100, ge=1)
    max_limit: int = Field(default=1000, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="EDT_MCP_",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    def clamp_limit(self, value: str | int | None) -> int:
        """Resolve a tool's ``limit`` parameter against the configured bounds.

        Missing or unparsable values fall back to ``default_limit``; anything
        above ``max_limit`` is capped.
        """
        if value is None or value == "":
            return self.default_limit
        try:
            limit = int(value)
        except (TypeError, ValueError):
            return self.default_limit
        if limit < 1:
            return self.default_limit
        return min(limit, self.max_limit)


settings = Settings()
