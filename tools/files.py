"""
File and directory tools.

Each call performs one filesystem operation. Preconditions are checked up front and
reported by name (``file_not_found``, ``not_writable`` ...) instead of surfacing the
raw OS error.
"""

import codecs
import json
import os
import shutil
from functools import partial
from pathlib import Path

import anyio

from core.registry import ToolDefinition
from core.results import ToolResult
from core.schema import boolean, enum, string
from core.tool_errors import ExecutionError, precondition_failed


def _path(value: str) -> anyio.Path:
    return anyio.Path(Path(value).expanduser())


def _encoding(name: str) -> str:
    # str.encode raises LookupError for bytes-to-bytes codecs such as base64 or hex
    try:
        "".encode(name)
        return codecs.lookup(name).name
    except LookupError as e:
        raise precondition_failed("unknown_encoding", name) from e


async def _require_file(path: anyio.Path) -> None:
    if not await path.exists():
        raise precondition_failed("file_not_found", str(path))
    if not await path.is_file():
        raise precondition_failed("not_a_file", str(path))


async def _require_directory(path: anyio.Path) -> None:
    if not await path.exists():
        raise precondition_failed("directory_not_found", str(path))
    if not await path.is_dir():
        raise precondition_failed("not_a_directory", str(path))


async def _require_writable_target(path: anyio.Path) -> None:
    await _require_directory(path.parent)
    if not os.access(path.parent, os.W_OK):
        raise precondition_failed("not_writable", str(path.parent))
    if await path.exists() and not os.access(path, os.W_OK):
        raise precondition_failed("not_writable", str(path))


async def file_operations(params, ctx):
    operation = params["operation"]
    path = _path(params["path"])
    content = params.get("content")

    try:
        if operation == "read":
            await _require_file(path)
            if not os.access(path, os.R_OK):
                raise precondition_failed("not_readable", str(path))
            return ToolResult.ok(await path.read_text(encoding=_encoding(params["encoding"])))

        if operation in ("write", "append"):
            if content is None:
                raise precondition_failed("missing_content", f"content is required for {operation}")
            await _require_writable_target(path)
            encoding = _encoding(params["encoding"])
            if operation == "write":
                await path.write_text(content, encoding=encoding)
                return ToolResult.ok(f"File written successfully: {path}")
            async with await anyio.open_file(path, "a", encoding=encoding) as f:
                await f.write(content)
            return ToolResult.ok(f"Content appended to: {path}")

        if operation in ("copy", "move"):
            if not params.get("destination"):
                raise precondition_failed("missing_destination", f"destination is required for {operation}")
            await _require_file(path)
            destination = _path(params["destination"])
            await _require_writable_target(destination)
            if operation == "copy":
                await anyio.to_thread.run_sync(partial(shutil.copy2, str(path), str(destination)))
                return ToolResult.ok(f"File copied: {path} -> {destination}")
            await anyio.to_thread.run_sync(partial(shutil.move, str(path), str(destination)))
            return ToolResult.ok(f"File moved: {path} -> {destination}")

        if operation == "delete":
            await _require_file(path)
            if not os.access(path.parent, os.W_OK):
                raise precondition_failed("not_writable", str(path.parent))
            await path.unlink()
            return ToolResult.ok(f"File deleted: {path}")
    except ExecutionError as e:
        return ToolResult.fail(e)
    except (OSError, UnicodeError) as e:
        return ToolResult.fail(ExecutionError(f"File operation error: {e}", code="io_error", cause=e))

    return ToolResult.fail(f"unknown operation {operation}")


async def _list_directory(path: anyio.Path) -> str:
    entries = []
    async for child in path.iterdir():
        stat = await child.stat()
        is_dir = await child.is_dir()
        entries.append({
            "name": child.name,
            "type": "directory" if is_dir else "file",
            "size": None if is_dir else stat.st_size,
        })
    entries.sort(key=lambda e: (e["type"] != "directory", e["name"]))
    return json.dumps(entries, indent=2, ensure_ascii=False)


async def directory_operations(params, ctx):
    operation = params["operation"]
    path = _path(params["path"])
    recursive = params["recursive"]

    try:
        if operation == "list":
            await _require_directory(path)
            if not os.access(path, os.R_OK):
                raise precondition_failed("not_readable", str(path))
            return ToolResult.ok(await _list_directory(path))

        if operation == "mkdir":
            if await path.exists():
                raise precondition_failed("already_exists", str(path))
            if not recursive:
                await _require_directory(path.parent)
            await path.mkdir(parents=recursive)
            return ToolResult.ok(f"Directory created: {path}")

        if operation == "rmdir":
            await _require_directory(path)
            if recursive:
                await anyio.to_thread.run_sync(partial(shutil.rmtree, str(path)))
            else:
                if [child async for child in path.iterdir()]:
                    raise precondition_failed("directory_not_empty", str(path))
                await path.rmdir()
            return ToolResult.ok(f"Directory removed: {path}")
    except ExecutionError as e:
        return ToolResult.fail(e)
    except OSError as e:
        return ToolResult.fail(ExecutionError(f"Directory operation error: {e}", code="io_error", cause=e))

    return ToolResult.fail(f"unknown operation {operation}")


TOOLS = [
    ToolDefinition(
        name="fileOperations",
        description="Perform file operations (read, write, append, copy, move, delete)",
        fields=(
            enum("operation", ["read", "write", "append", "copy", "move", "delete"], required=True),
            string("path", required=True),
            string("destination", description="Target path for copy/move"),
            string("content"),
            string("encoding", default="utf8"),
        ),
        handler=file_operations,
    ),
    ToolDefinition(
        name="directoryOperations",
        description="List, create or remove directories",
        fields=(
            enum("operation", ["list", "mkdir", "rmdir"], required=True),
            string("path", required=True),
            boolean("recursive", default=False),
        ),
        handler=directory_operations,
    ),
]
