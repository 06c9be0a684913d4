import argparse
import json
import sys
import time

import anyio
from mcp import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client


def server_params() -> StdioServerParameters:
    return StdioServerParameters(command=sys.executable, args=["-m", "servers.mcp_server"])


async def list_tool_names() -> list[str]:
    async with stdio_client(server_params()) as streams:
        async with ClientSession(*streams) as session:
            await session.initialize()
            tools = await session.list_tools()
            return [t.name for t in tools.tools]


async def call_once(tool: str, arguments: dict) -> tuple[float, bool, str]:
    async with stdio_client(server_params()) as streams:
        async with ClientSession(*streams) as session:
            await session.initialize()
            start = time.perf_counter()
            res = await session.call_tool(tool, arguments)
            latency = (time.perf_counter() - start) * 1000
            return latency, bool(res.isError), res.content[0].text if res.content else ""


async def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--tool", default=None, help="tool to call; lists tools when omitted")
    ap.add_argument("--args", default="{}", help="JSON object of tool arguments")
    args = ap.parse_args()

    if args.tool is None:
        print(json.dumps({"tools": await list_tool_names()}))
        return
    lat, is_error, out = await call_once(args.tool, json.loads(args.args))
    print(json.dumps({"latency_ms": lat, "is_error": is_error, "text": out}))


if __name__ == "__main__":
    anyio.run(main)
