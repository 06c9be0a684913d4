import re

import anyio

from core.registry import ToolDefinition
from core.results import ToolResult
from core.schema import enum, string, string_map
from core.tool_errors import ExecutionError, ValidationError, precondition_failed

TEMPLATE_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


def render_template(content: str, variables) -> str:
    for key, value in (variables or {}).items():
        content = content.replace("{{" + key + "}}", value)
    return content


def _template_path(ctx, name):
    if not name:
        raise ValidationError("missing_field", "templateName")
    if not TEMPLATE_NAME.match(name) or name.startswith("."):
        raise ValidationError("unsafe_argument", "templateName")
    return anyio.Path(ctx.settings.templates_dir) / f"{name}.html"


async def email_template(params, ctx):
    templates_dir = anyio.Path(ctx.settings.templates_dir)
    await templates_dir.mkdir(parents=True, exist_ok=True)
    action = params["action"]
    name = params.get("templateName")

    if action == "create":
        content = params.get("templateContent")
        path = _template_path(ctx, name)
        if content is None:
            raise ValidationError("missing_field", "templateContent")
        await path.write_text(content, encoding="utf-8")
        return ToolResult.ok(f'Template "{name}" created successfully')

    if action == "render":
        path = _template_path(ctx, name)
        if not await path.exists():
            return ToolResult.fail(precondition_failed("template_not_found", name))
        content = await path.read_text(encoding="utf-8")
        return ToolResult.ok(render_template(content, params.get("variables")))

    if action == "list":
        names = sorted([p.stem async for p in templates_dir.glob("*.html")])
        return ToolResult.ok("Available templates:\n" + "\n".join(names))

    if action == "delete":
        path = _template_path(ctx, name)
        if not await path.exists():
            return ToolResult.fail(precondition_failed("template_not_found", name))
        await path.unlink()
        return ToolResult.ok(f'Template "{name}" deleted')

    raise ExecutionError(f"unknown action {action}")


TOOLS = [
    ToolDefinition(
        name="createEmailTemplate",
        description="Create and manage email templates with variables",
        fields=(
            enum("action", ["create", "render", "list", "delete"], required=True),
            string("templateName"),
            string("templateContent"),
            string_map("variables", description="{{name}} placeholders to substitute on render"),
        ),
        handler=email_template,
    ),
]
