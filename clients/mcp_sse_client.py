import argparse
import json
import time

import anyio
from mcp import ClientSession
from mcp.client.sse import sse_client


async def call_once(base_url: str, tool: str | None, arguments: dict) -> dict:
    t0 = time.perf_counter()
    async with sse_client(f"{base_url.rstrip('/')}/mcp/sse") as streams:
        async with ClientSession(*streams) as session:
            await session.initialize()
            tools = await session.list_tools()
            if tool is None:
                return {"tools": [t.name for t in tools.tools]}
            t_rpc0 = time.perf_counter()
            res = await session.call_tool(tool, arguments)
            t_rpc1 = time.perf_counter()
            return {
                "latency_total_ms": (t_rpc1 - t0) * 1000,
                "latency_rpc_ms": (t_rpc1 - t_rpc0) * 1000,
                "is_error": bool(res.isError),
                "text": res.content[0].text if res.content else "",
            }


async def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--base-url", default="http://127.0.0.1:8001")
    ap.add_argument("--tool", default=None, help="tool to call; lists tools when omitted")
    ap.add_argument("--args", default="{}", help="JSON object of tool arguments")
    args = ap.parse_args()
    print(json.dumps(await call_once(args.base_url, args.tool, json.loads(args.args))))


if __name__ == "__main__":
    anyio.run(main)
