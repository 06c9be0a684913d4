"""
Lazily created MySQL connection pool, keyed by connection parameters.

The pool is opened on first use, reused while callers keep passing the same
parameters, and closed when they change or when the server shuts down. Only this
open/replace/close lifecycle is serialised; queries go through aiomysql's pool.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import aiomysql
import anyio

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionParams:
    host: str
    user: str
    password: str
    database: str
    port: int = 3306

    def __repr__(self) -> str:
        return f"ConnectionParams({self.user}@{self.host}:{self.port}/{self.database})"


PoolFactory = Callable[..., Awaitable[Any]]


async def _create_pool(params: ConnectionParams) -> Any:
    return await aiomysql.create_pool(
        host=params.host,
        port=params.port,
        user=params.user,
        password=params.password,
        db=params.database,
        autocommit=True,
    )


class DatabasePool:
    def __init__(self, factory: Optional[PoolFactory] = None) -> None:
        self._factory = factory or _create_pool
        self._pool: Any = None
        self._params: Optional[ConnectionParams] = None
        self._lock = anyio.Lock()

    @property
    def params(self) -> Optional[ConnectionParams]:
        return self._params

    async def get(self, params: ConnectionParams) -> Any:
        async with self._lock:
            if self._pool is not None and self._params == params:
                return self._pool
            if self._pool is not None:
                logger.info("connection parameters changed, closing pool for %r", self._params)
                await self._close_locked()
            logger.info("opening pool for %r", params)
            self._pool = await self._factory(params)
            self._params = params
            return self._pool

    async def close(self) -> None:
        async with self._lock:
            await self._close_locked()

    async def _close_locked(self) -> None:
        if self._pool is None:
            return
        pool, self._pool, self._params = self._pool, None, None
        pool.close()
        await pool.wait_closed()
