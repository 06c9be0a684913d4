"""
manageEnv: read and edit KEY=VALUE dotenv files.

The file is treated as a list of lines. Updates replace the matching line in place
and new keys are appended, so comments and ordering of untouched lines survive.
"""

import re
from pathlib import Path
from typing import List, Optional

import anyio

from core.registry import ToolDefinition
from core.results import ToolResult
from core.schema import enum, string
from core.tool_errors import ExecutionError, ValidationError, precondition_failed

ENV_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")


def parse_lines(text: str) -> List[str]:
    return [line for line in text.splitlines() if line.strip()]


def line_key(line: str) -> str:
    return line.split("=", 1)[0].strip()


def find_value(lines: List[str], key: str) -> Optional[str]:
    for line in lines:
        if "=" in line and line_key(line) == key:
            return line.split("=", 1)[1]
    return None


def set_env_value(lines: List[str], key: str, value: str) -> List[str]:
    entry = f"{key}={value}"
    out, replaced = [], False
    for line in lines:
        if not replaced and line_key(line) == key:
            out.append(entry)
            replaced = True
        else:
            out.append(line)
    if not replaced:
        out.append(entry)
    return out


def delete_env_key(lines: List[str], key: str) -> List[str]:
    return [line for line in lines if line_key(line) != key]


def render(lines: List[str]) -> str:
    return "\n".join(lines) + "\n" if lines else ""


def _check_key(key: Optional[str]) -> str:
    if not key:
        raise ValidationError("missing_field", "key")
    if not ENV_KEY.match(key):
        raise ValidationError("unsafe_argument", "key")
    return key


async def manage_env(params, ctx):
    action = params["action"]
    path = anyio.Path(Path(params["file"]).expanduser())
    key = params.get("key")

    if action == "read":
        if not await path.exists():
            return ToolResult.fail(precondition_failed("file_not_found", str(path)))
        content = await path.read_text(encoding="utf-8")
        if not key:
            return ToolResult.ok(content)
        value = find_value(parse_lines(content), key)
        if value is None:
            return ToolResult.fail(ExecutionError(f"Key {key} not found in {path}", code="key_not_found"))
        return ToolResult.ok(f"{key}={value}")

    key = _check_key(key)
    lines = parse_lines(await path.read_text(encoding="utf-8")) if await path.exists() else []

    if action in ("create", "update"):
        value = params.get("value")
        if value is None:
            raise ValidationError("missing_field", "value")
        if "\n" in value or "\r" in value:
            raise ValidationError("unsafe_argument", "value")
        await path.write_text(render(set_env_value(lines, key, value)), encoding="utf-8")
        return ToolResult.ok(f"Environment variable {key} {action}d")

    if action == "delete":
        if not await path.exists():
            return ToolResult.fail(precondition_failed("file_not_found", str(path)))
        await path.write_text(render(delete_env_key(lines, key)), encoding="utf-8")
        return ToolResult.ok(f"Environment variable {key} deleted")

    raise ExecutionError(f"unknown action {action}")


TOOLS = [
    ToolDefinition(
        name="manageEnv",
        description="Manage environment variables in a .env file",
        fields=(
            enum("action", ["read", "create", "update", "delete"], required=True),
            string("key"),
            string("value"),
            string("file", default=".env"),
        ),
        handler=manage_env,
    ),
]
