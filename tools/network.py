import json

import httpx

from core.process import safe_arg
from core.registry import ToolDefinition
from core.results import ToolResult
from core.schema import enum, integer, string, string_map
from core.tool_errors import ExecutionError

TEST_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]


async def _send(ctx, method, url, headers=None, body=None) -> httpx.Response:
    async with ctx.http_client() as client:
        try:
            return await client.request(method, url, headers=headers, content=body)
        except httpx.HTTPError as e:
            raise ExecutionError(f"{method} {url} failed: {e}", code="http_error", cause=e) from e


async def make_http_request(params, ctx):
    response = await _send(ctx, params["method"].upper(), params["url"], params.get("headers"), params.get("body"))
    payload = {
        "statusCode": response.status_code,
        "headers": dict(response.headers),
        "body": response.text,
    }
    return ToolResult.ok(json.dumps(payload, indent=2, ensure_ascii=False))


async def check_api_endpoint(params, ctx):
    headers = {"Content-Type": "application/json", **(params.get("headers") or {})}
    response = await _send(ctx, params["method"], params["url"], headers, params.get("body"))

    expected = params.get("expectedStatus")
    passed = expected is None or response.status_code == expected
    lines = [f"API {'PASSED' if passed else 'FAILED'}", f"Status: {response.status_code}"]
    if expected is not None:
        lines.append(f"Expected: {expected}")
    lines.append(response.text)
    return ToolResult.ok("\n".join(lines))


async def ping(params, ctx):
    host = safe_arg(params["host"], "host")
    result = await ctx.runner.run(["ping", "-c", "1", "-W", "1", host])
    status = "success" if result.ok else "failure"
    return ToolResult.ok(f"Ping {host}: {status}\n{result.output}".rstrip())


TOOLS = [
    ToolDefinition(
        name="makeHttpRequest",
        description="Makes an HTTP request to a specified URL.",
        fields=(
            string("method", required=True),
            string("url", required=True),
            string_map("headers"),
            string("body"),
        ),
        handler=make_http_request,
    ),
    ToolDefinition(
        name="testApiEndpoint",
        description="Test API endpoints",
        fields=(
            string("url", required=True),
            enum("method", TEST_METHODS, default="GET"),
            string_map("headers"),
            string("body"),
            integer("expectedStatus", minimum=100, maximum=599),
        ),
        handler=check_api_endpoint,
    ),
    ToolDefinition(
        name="ping",
        description="Pings a host to check its reachability.",
        fields=(string("host", required=True),),
        handler=ping,
    ),
]
