import pytest

from core.dispatcher import Dispatcher
from core.results import InvocationRequest
from tools.catalog import build_registry
from tools.env_file import delete_env_key, find_value, parse_lines, render, set_env_value

pytestmark = pytest.mark.unit


def test_parse_drops_blank_lines():
    assert parse_lines("A=1\n\n  \nB=2\n") == ["A=1", "B=2"]


def test_set_replaces_in_place():
    lines = ["# comment", "A=1", "B=2"]
    assert set_env_value(lines, "A", "9") == ["# comment", "A=9", "B=2"]


def test_set_appends_missing_key():
    assert set_env_value(["A=1"], "C", "3") == ["A=1", "C=3"]


def test_key_match_ignores_surrounding_space():
    assert set_env_value(["A =1"], "A", "2") == ["A=2"]
    assert find_value(["A =1"], "A") == "1"


def test_value_keeps_equals_signs():
    assert find_value(["URL=a=b"], "URL") == "a=b"


def test_delete_and_render():
    lines = delete_env_key(["A=1", "B=2"], "A")
    assert lines == ["B=2"]
    assert render(lines) == "B=2\n"
    assert render([]) == ""


@pytest.fixture
def dispatch(ctx):
    dispatcher = Dispatcher(build_registry(), ctx)

    async def call(**params):
        response = await dispatcher.dispatch(InvocationRequest(id=1, tool_name="manageEnv", raw_params=params))
        return response.result

    return call


@pytest.mark.anyio
async def test_manage_env_round_trip(tmp_path, dispatch):
    env = tmp_path / ".env"
    env.write_text("A=1\n\nB=2\n")

    result = await dispatch(action="update", key="A", value="10", file=str(env))
    assert not result.is_error
    assert env.read_text() == "A=10\nB=2\n"

    result = await dispatch(action="create", key="C", value="3", file=str(env))
    assert env.read_text() == "A=10\nB=2\nC=3\n"

    result = await dispatch(action="read", key="B", file=str(env))
    assert result.text == "B=2"

    result = await dispatch(action="read", file=str(env))
    assert result.text == "A=10\nB=2\nC=3\n"

    result = await dispatch(action="delete", key="A", file=str(env))
    assert env.read_text() == "B=2\nC=3\n"


@pytest.mark.anyio
async def test_manage_env_creates_missing_file(tmp_path, dispatch):
    env = tmp_path / "new.env"
    result = await dispatch(action="create", key="TOKEN", value="x", file=str(env))
    assert not result.is_error
    assert env.read_text() == "TOKEN=x\n"


@pytest.mark.anyio
async def test_manage_env_errors(tmp_path, dispatch):
    env = tmp_path / ".env"
    env.write_text("A=1\n")

    result = await dispatch(action="read", key="MISSING", file=str(env))
    assert result.is_error
    assert "Key MISSING not found" in result.text

    result = await dispatch(action="read", file=str(tmp_path / "absent.env"))
    assert result.text.startswith("execution_error: file_not_found")

    result = await dispatch(action="update", key="A", file=str(env))
    assert result.text == "validation_error: missing_field:value"

    result = await dispatch(action="update", key="A", value="1\nEVIL=1", file=str(env))
    assert result.text == "validation_error: unsafe_argument:value"

    result = await dispatch(action="create", key="BAD KEY", value="1", file=str(env))
    assert result.text == "validation_error: unsafe_argument:key"
    assert env.read_text() == "A=1\n"
