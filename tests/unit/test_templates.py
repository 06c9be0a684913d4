import pytest

from core.dispatcher import Dispatcher
from core.results import InvocationRequest
from tools.catalog import build_registry
from tools.templates import render_template

pytestmark = pytest.mark.unit


def test_render_template():
    assert render_template("Hi {{name}}, {{name}}!", {"name": "Ann"}) == "Hi Ann, Ann!"
    assert render_template("Hi {{other}}", None) == "Hi {{other}}"


@pytest.mark.anyio
async def test_template_lifecycle(ctx, settings):
    dispatcher = Dispatcher(build_registry(), ctx)

    async def call(**params):
        response = await dispatcher.dispatch(
            InvocationRequest(id=1, tool_name="createEmailTemplate", raw_params=params)
        )
        return response.result

    result = await call(action="create", templateName="welcome", templateContent="<p>Hi {{name}}</p>")
    assert result.text == 'Template "welcome" created successfully'
    assert (settings.templates_dir / "welcome.html").exists()

    result = await call(action="render", templateName="welcome", variables={"name": "Ann"})
    assert result.text == "<p>Hi Ann</p>"

    result = await call(action="list")
    assert result.text == "Available templates:\nwelcome"

    result = await call(action="delete", templateName="welcome")
    assert not result.is_error

    result = await call(action="render", templateName="welcome")
    assert result.text == "execution_error: template_not_found: welcome"

    result = await call(action="create", templateName="../escape", templateContent="x")
    assert result.text == "validation_error: unsafe_argument:templateName"

    result = await call(action="create", templateContent="x")
    assert result.text == "validation_error: missing_field:templateName"
