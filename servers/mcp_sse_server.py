import logging

import anyio
import uvicorn
from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.responses import Response
from starlette.routing import Mount, Route

from core.dispatcher import Dispatcher
from core.log import configure_logging
from core.settings import get_settings
from servers.mcp_server import build_dispatcher, build_server

logger = logging.getLogger(__name__)


def create_app(dispatcher: Dispatcher) -> Starlette:
    srv = build_server(dispatcher)
    sse = SseServerTransport("/mcp/messages/")

    async def handle_sse(request):  # type: ignore[override]
        async with sse.connect_sse(request.scope, request.receive, request._send) as streams:  # noqa: SLF001
            await srv.run(streams[0], streams[1], srv.create_initialization_options())
        return Response()

    routes = [
        Route("/mcp/sse", endpoint=handle_sse, methods=["GET"]),
        Mount("/mcp/messages/", app=sse.handle_post_message),
    ]
    return Starlette(routes=routes)


async def serve_sse(dispatcher: Dispatcher) -> None:
    settings = dispatcher.context.settings
    config = uvicorn.Config(
        app=create_app(dispatcher),
        host=settings.sse_host,
        port=settings.sse_port,
        ssl_certfile=str(settings.ssl_certfile) if settings.ssl_certfile else None,
        ssl_keyfile=str(settings.ssl_keyfile) if settings.ssl_keyfile else None,
        log_level="error",
    )
    scheme = "https" if settings.ssl_certfile else "http"
    logger.info("serving %d tools at %s://%s:%s/mcp/sse", len(dispatcher.registry),
                scheme, settings.sse_host, settings.sse_port)
    try:
        await uvicorn.Server(config).serve()
    finally:
        await dispatcher.context.aclose()


async def main():
    await serve_sse(build_dispatcher())


if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    anyio.run(main)
