"""
Invocation dispatcher.

Each request moves Idle -> Validating -> Executing -> Idle and always produces
exactly one response carrying the request id. Tool-level failures come back as
error results; nothing is raised to the transport.
"""

from __future__ import annotations

import logging
import time

from core.context import ToolContext
from core.registry import ToolRegistry
from core.results import InvocationRequest, InvocationResponse, ToolResult
from core.schema import validate
from core.tool_errors import NotFoundError, ToolError, ValidationError

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self, registry: ToolRegistry, context: ToolContext) -> None:
        self.registry = registry
        self.context = context

    async def dispatch(self, request: InvocationRequest) -> InvocationResponse:
        start = time.perf_counter()
        result = await self._run(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "tool=%s id=%s ok=%s duration_ms=%.1f",
            request.tool_name,
            request.id,
            not result.is_error,
            duration_ms,
        )
        return InvocationResponse(id=request.id, result=result)

    async def _run(self, request: InvocationRequest) -> ToolResult:
        definition = self.registry.lookup(request.tool_name)
        if definition is None:
            return ToolResult.fail(
                NotFoundError(f"unknown tool '{request.tool_name}'", code="not_found")
            )

        try:
            params = validate(definition.fields, request.raw_params)
        except ValidationError as e:
            logger.warning("tool=%s id=%s rejected: %s", request.tool_name, request.id, e.message)
            return ToolResult.fail(e)

        try:
            result = await definition.handler(params, self.context)
        except ToolError as e:
            logger.warning("tool=%s id=%s failed: %s", request.tool_name, request.id, e.to_log_dict())
            return ToolResult.fail(e)
        except Exception as e:
            logger.error("tool=%s id=%s crashed", request.tool_name, request.id, exc_info=True)
            return ToolResult.fail(f"{type(e).__name__}: {e}")

        if not isinstance(result, ToolResult):
            logger.error("tool=%s returned %r instead of a ToolResult", request.tool_name, type(result))
            return ToolResult.fail("handler returned no result")
        return result
