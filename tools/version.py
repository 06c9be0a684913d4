"""Semantic version bumping for VERSION files, package.json and pubspec.yaml."""

import json
import re
from pathlib import Path
from typing import Optional

import anyio

from core.registry import ToolDefinition
from core.results import ToolResult
from core.schema import enum, string
from core.tool_errors import ExecutionError

INITIAL_VERSION = "0.0.1"

_SEMVER = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")
_YAML_VERSION = re.compile(r"^version:[ \t]*(\S*)[ \t]*$", re.MULTILINE)


def bump_version(current: Optional[str], part: str = "patch") -> str:
    """
    >>> bump_version(None)
    '0.0.1'
    >>> bump_version("1.2.3", "minor")
    '1.3.0'
    """
    if current is None or not current.strip():
        return INITIAL_VERSION

    match = _SEMVER.match(current.strip())
    if match is None:
        raise ExecutionError(f"invalid_version: {current.strip()!r}", code="invalid_version")
    major, minor, patch = (int(g) for g in match.groups())

    if part == "major":
        return f"{major + 1}.0.0"
    if part == "minor":
        return f"{major}.{minor + 1}.0"
    if part == "patch":
        return f"{major}.{minor}.{patch + 1}"
    raise ValueError(f"unknown version part: {part}")


def _split_build(version: str):
    base, plus, build = version.partition("+")
    return base, plus + build


def bump_json(text: str, part: str):
    try:
        data = json.loads(text) if text.strip() else {}
    except ValueError as e:
        raise ExecutionError(f"invalid_json: {e}", code="invalid_json", cause=e) from e
    if not isinstance(data, dict):
        raise ExecutionError(f"invalid_version: expected a JSON object, got {type(data).__name__}", code="invalid_version")
    old = data.get("version")
    if old is not None and not isinstance(old, str):
        raise ExecutionError(f"invalid_version: {old!r}", code="invalid_version")
    new = bump_version(old, part)
    data["version"] = new
    return old, new, json.dumps(data, indent=2) + "\n"


def bump_yaml(text: str, part: str):
    match = _YAML_VERSION.search(text)
    if match is None:
        new = INITIAL_VERSION
        prefix = text if not text or text.endswith("\n") else text + "\n"
        return None, new, f"{prefix}version: {new}\n"
    old = match.group(1)
    base, build = _split_build(old)
    new = bump_version(base, part) + build
    return old, new, text[: match.start(1)] + new + text[match.end(1):]


def bump_plain(text: str, part: str):
    old = text.strip() or None
    new = bump_version(old, part)
    return old, new, new + "\n"


async def bump_version_tool(params, ctx):
    path = anyio.Path(Path(params["file"]).expanduser())
    text = await path.read_text(encoding="utf-8") if await path.exists() else ""

    name = path.name.lower()
    if name.endswith(".json"):
        old, new, rendered = bump_json(text, params["part"])
    elif name.endswith((".yaml", ".yml")):
        old, new, rendered = bump_yaml(text, params["part"])
    else:
        old, new, rendered = bump_plain(text, params["part"])

    await path.write_text(rendered, encoding="utf-8")
    return ToolResult.ok(f"Version bumped: {old or 'none'} -> {new}")


TOOLS = [
    ToolDefinition(
        name="bumpVersion",
        description="Bump the semantic version stored in a VERSION file, package.json or pubspec.yaml",
        fields=(
            string("file", default="VERSION"),
            enum("part", ["major", "minor", "patch"], default="patch"),
        ),
        handler=bump_version_tool,
    ),
]
