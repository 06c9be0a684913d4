import json
import logging

import aiomysql

from core.database import ConnectionParams
from core.registry import ToolDefinition
from core.results import ToolResult
from core.schema import integer, string
from core.tool_errors import ExecutionError

logger = logging.getLogger(__name__)


async def run_query(pool, query: str):
    async with pool.acquire() as conn:
        async with conn.cursor(aiomysql.DictCursor) as cursor:
            await cursor.execute(query)
            if cursor.description is None:
                return {"affectedRows": cursor.rowcount, "insertId": cursor.lastrowid}
            return await cursor.fetchall()


async def db_query(params, ctx):
    conn_params = ConnectionParams(
        host=params["host"],
        user=params["user"],
        password=params.get("password") or "",
        database=params["database"],
        port=params.get("port") or 3306,
    )
    try:
        pool = await ctx.db.get(conn_params)
        rows = await run_query(pool, params["query"])
    except (aiomysql.Error, OSError) as e:
        logger.warning("query against %r failed: %s", conn_params, e)
        return ToolResult.fail(ExecutionError(f"Database error: {e}", code="db_error", cause=e))
    return ToolResult.ok(f"Query OK!\n{json.dumps(rows, indent=2, default=str, ensure_ascii=False)}")


TOOLS = [
    ToolDefinition(
        name="dbQuery",
        description="Run database query",
        fields=(
            string("query", required=True),
            string("database", required=True),
            string("host", default="localhost"),
            string("user", default="root"),
            string("password"),
            integer("port", minimum=1, maximum=65535),
        ),
        handler=db_query,
    ),
]
