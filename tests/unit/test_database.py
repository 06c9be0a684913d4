import pytest

from core.database import ConnectionParams, DatabasePool
from core.dispatcher import Dispatcher
from core.results import InvocationRequest
from tools import database as database_tool
from tools.catalog import build_registry

pytestmark = [pytest.mark.unit, pytest.mark.anyio]

PARAMS = ConnectionParams(host="db", user="root", password="pw", database="app")


async def test_pool_is_reused_for_identical_params(ctx):
    first = await ctx.db.get(PARAMS)
    second = await ctx.db.get(ConnectionParams(host="db", user="root", password="pw", database="app"))
    assert first is second
    assert len(ctx.created_pools) == 1


async def test_pool_is_replaced_when_params_change(ctx):
    first = await ctx.db.get(PARAMS)
    second = await ctx.db.get(ConnectionParams(host="db", user="root", password="pw", database="other"))
    assert first is not second
    assert first.closed
    assert not second.closed
    assert ctx.db.params.database == "other"


async def test_close(ctx):
    pool = await ctx.db.get(PARAMS)
    await ctx.aclose()
    assert pool.closed
    assert ctx.db.params is None
    await ctx.db.close()


def test_repr_hides_password():
    assert "pw" not in repr(PARAMS)


async def test_db_query_tool(ctx, monkeypatch):
    async def fake_query(pool, query):
        assert pool.params.database == "app"
        return [{"id": 1, "name": "a"}]

    monkeypatch.setattr(database_tool, "run_query", fake_query)
    dispatcher = Dispatcher(build_registry(), ctx)
    response = await dispatcher.dispatch(
        InvocationRequest(id=1, tool_name="dbQuery", raw_params={"query": "SELECT 1", "database": "app"})
    )
    assert response.result.text.startswith("Query OK!\n")
    assert '"name": "a"' in response.result.text
    assert ctx.db.params == ConnectionParams(host="localhost", user="root", password="", database="app")


async def test_db_query_connection_error(settings, runner):
    from core.context import ToolContext

    async def failing_factory(params):
        raise OSError("Can't connect to MySQL server")

    ctx = ToolContext(settings=settings, runner=runner, db=DatabasePool(factory=failing_factory))
    dispatcher = Dispatcher(build_registry(), ctx)
    response = await dispatcher.dispatch(
        InvocationRequest(id=1, tool_name="dbQuery", raw_params={"query": "SELECT 1", "database": "app"})
    )
    assert response.result.is_error
    assert response.result.text == "execution_error: Database error: Can't connect to MySQL server"
