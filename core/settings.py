"""
Server settings.

Every field can be set through the environment or a ``.env`` file in the working
directory, using the ``DEV_MCP_`` prefix (``DEV_MCP_SSE_PORT=9000``).

    from core.settings import get_settings

    settings = get_settings()
    print(settings.sse_port)
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DEV_MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Server identity
    # -------------------------------------------------------------------------
    server_name: str = Field(default="dev-mcp-server", description="Name reported to MCP clients")
    server_version: str = Field(default="1.0.0", description="Version reported to MCP clients")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    # -------------------------------------------------------------------------
    # SSE transport
    # -------------------------------------------------------------------------
    sse_host: str = Field(default="127.0.0.1")
    sse_port: int = Field(default=8001, ge=1, le=65535)
    ssl_certfile: Optional[Path] = Field(default=None, description="PEM certificate for HTTPS")
    ssl_keyfile: Optional[Path] = Field(default=None, description="PEM private key for HTTPS")

    # -------------------------------------------------------------------------
    # Tools
    # -------------------------------------------------------------------------
    http_timeout: float = Field(default=30.0, gt=0, description="Deadline for outbound HTTP calls (seconds)")
    smtp_timeout: float = Field(default=30.0, gt=0, description="Socket timeout for SMTP sessions (seconds)")
    templates_dir: Path = Field(default=Path.home() / ".email-templates")
    default_cwd: Optional[Path] = Field(
        default=None,
        description="Working directory for process tools when a call does not pass one",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
