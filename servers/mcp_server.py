# MCP tool server: advertises the tool catalog and routes calls through the dispatcher
import argparse
import logging

import anyio
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from core.context import ToolContext
from core.dispatcher import Dispatcher
from core.log import configure_logging
from core.results import InvocationRequest
from core.settings import get_settings
from tools.catalog import build_registry

logger = logging.getLogger(__name__)


class ToolCallFailed(Exception):
    """Carries an error result's text; the SDK reports it to the client with isError set."""


def build_dispatcher(context: ToolContext | None = None) -> Dispatcher:
    return Dispatcher(build_registry(), context or ToolContext())


def build_server(dispatcher: Dispatcher) -> Server:
    settings = dispatcher.context.settings
    srv = Server(settings.server_name, version=settings.server_version)

    @srv.list_tools()
    async def list_tools() -> list[Tool]:
        return [
            Tool(name=d.name, description=d.description, inputSchema=d.input_schema())
            for d in dispatcher.registry.list()
        ]

    # the dispatcher owns validation and reports it as a tool result
    @srv.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        try:
            request_id = srv.request_context.request_id
        except LookupError:
            request_id = None
        response = await dispatcher.dispatch(
            InvocationRequest(id=request_id, tool_name=name, raw_params=arguments)
        )
        if response.result.is_error:
            raise ToolCallFailed(response.result.text)
        return response.result.to_content()

    return srv


async def serve_stdio(dispatcher: Dispatcher) -> None:
    srv = build_server(dispatcher)
    logger.info("serving %d tools over stdio", len(dispatcher.registry))
    try:
        async with stdio_server() as (read, write):
            await srv.run(read, write, srv.create_initialization_options())
    finally:
        await dispatcher.context.aclose()


async def main(transport: str = "stdio") -> None:
    dispatcher = build_dispatcher()
    if transport == "sse":
        from servers.mcp_sse_server import serve_sse

        await serve_sse(dispatcher)
    else:
        await serve_stdio(dispatcher)


def run() -> None:
    ap = argparse.ArgumentParser(description="Developer tool server speaking MCP")
    ap.add_argument("--transport", choices=["stdio", "sse"], default="stdio")
    ap.add_argument("--log-level", default=None)
    args = ap.parse_args()

    configure_logging(args.log_level or get_settings().log_level)
    anyio.run(main, args.transport)


if __name__ == "__main__":
    run()
