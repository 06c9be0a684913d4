import pytest

from core.dispatcher import Dispatcher
from core.registry import ToolDefinition, ToolRegistry
from core.results import InvocationRequest, ToolResult
from core.schema import integer, string
from core.tool_errors import ExecutionError
from tools.catalog import build_registry

pytestmark = [pytest.mark.unit, pytest.mark.anyio]


def _registry(handler, fields=(string("name", required=True),)):
    return ToolRegistry([ToolDefinition(name="t", description="test", fields=fields, handler=handler)])


async def test_unknown_tool_is_not_found(ctx):
    calls = []

    async def handler(params, c):
        calls.append(params)
        return ToolResult.ok("x")

    dispatcher = Dispatcher(_registry(handler), ctx)
    response = await dispatcher.dispatch(InvocationRequest(id=7, tool_name="nope", raw_params={}))
    assert response.id == 7
    assert response.result.is_error
    assert response.result.text == "not_found: unknown tool 'nope'"
    assert calls == []


async def test_validation_failure_skips_handler(ctx):
    calls = []

    async def handler(params, c):
        calls.append(params)
        return ToolResult.ok("x")

    dispatcher = Dispatcher(_registry(handler), ctx)
    response = await dispatcher.dispatch(InvocationRequest(id="abc", tool_name="t", raw_params={}))
    assert response.id == "abc"
    assert response.result.text == "validation_error: missing_field:name"
    assert calls == []


async def test_handler_receives_validated_params(ctx):
    seen = {}

    async def handler(params, c):
        seen.update(params)
        assert c is ctx
        return ToolResult.ok(f"hi {params['name']}")

    fields = (string("name", required=True), integer("n", default=3))
    dispatcher = Dispatcher(_registry(handler, fields), ctx)
    response = await dispatcher.dispatch(
        InvocationRequest(id=1, tool_name="t", raw_params={"name": "bob", "junk": True})
    )
    assert not response.result.is_error
    assert response.result.text == "hi bob"
    assert seen == {"name": "bob", "n": 3}


async def test_tool_error_becomes_result(ctx):
    async def handler(params, c):
        raise ExecutionError("boom", code="nonzero_exit", exit_code=2)

    dispatcher = Dispatcher(_registry(handler), ctx)
    response = await dispatcher.dispatch(InvocationRequest(id=1, tool_name="t", raw_params={"name": "a"}))
    assert response.result.is_error
    assert response.result.text == "execution_error: boom (exit code 2)"


async def test_unexpected_exception_becomes_result(ctx):
    async def handler(params, c):
        raise KeyError("missing")

    dispatcher = Dispatcher(_registry(handler), ctx)
    response = await dispatcher.dispatch(InvocationRequest(id=1, tool_name="t", raw_params={"name": "a"}))
    assert response.result.is_error
    assert response.result.text.startswith("execution_error: KeyError")
    assert len(response.result.content) == 1


async def test_non_result_return_is_reported(ctx):
    async def handler(params, c):
        return "plain string"

    dispatcher = Dispatcher(_registry(handler), ctx)
    response = await dispatcher.dispatch(InvocationRequest(id=1, tool_name="t", raw_params={"name": "a"}))
    assert response.result.text == "execution_error: handler returned no result"


async def test_every_required_field_is_enforced(ctx, runner):
    registry = build_registry()
    dispatcher = Dispatcher(registry, ctx)
    for definition in registry.list():
        required = [f.name for f in definition.fields if f.required]
        if not required:
            continue
        response = await dispatcher.dispatch(
            InvocationRequest(id=definition.name, tool_name=definition.name, raw_params={})
        )
        assert response.id == definition.name
        assert response.result.is_error
        assert response.result.text == f"validation_error: missing_field:{required[0]}"
    assert runner.calls == []


async def test_non_object_params_rejected(ctx):
    dispatcher = Dispatcher(build_registry(), ctx)
    response = await dispatcher.dispatch(InvocationRequest(id=1, tool_name="hello", raw_params=[1, 2]))
    assert response.result.text == "validation_error: type_mismatch:params"
