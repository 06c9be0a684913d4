from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import httpx

from core.database import DatabasePool
from core.process import CommandRunner
from core.settings import Settings, get_settings


@dataclass
class ToolContext:
    """
    Resources shared by tool handlers, owned by the server for its lifetime.

    Tests swap in a fake runner, a mock HTTP transport or a fake pool factory.
    """

    settings: Settings = field(default_factory=get_settings)
    runner: CommandRunner = field(default_factory=CommandRunner)
    db: DatabasePool = field(default_factory=DatabasePool)
    http_transport: Optional[httpx.AsyncBaseTransport] = None

    def http_client(self, **kwargs) -> httpx.AsyncClient:
        kwargs.setdefault("timeout", self.settings.http_timeout)
        if self.http_transport is not None:
            kwargs.setdefault("transport", self.http_transport)
        return httpx.AsyncClient(**kwargs)

    def cwd(self, requested: Optional[str]) -> Optional[Path]:
        if requested:
            return Path(requested).expanduser()
        return self.settings.default_cwd

    async def aclose(self) -> None:
        await self.db.close()
