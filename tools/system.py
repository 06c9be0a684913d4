import base64
import secrets
import shlex

from core.process import safe_arg
from core.registry import ToolDefinition
from core.results import ToolResult
from core.schema import enum, integer, string
from core.tool_errors import ExecutionError, ValidationError

TOKEN_TYPES = ["hex", "base64", "urlsafe"]


async def hello(params, ctx):
    return ToolResult.ok(f"Hello, {params['name']}!")


def generate_token(length: int, kind: str) -> str:
    """Return exactly ``length`` characters of random text in the given alphabet."""
    raw = secrets.token_bytes(length)
    if kind == "hex":
        text = raw.hex()
    elif kind == "base64":
        text = base64.b64encode(raw).decode("ascii")
    else:
        text = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
    return text[:length]


async def generate_secure_token(params, ctx):
    token = generate_token(params["length"], params["type"])
    return ToolResult.ok(f"Secure token generated: {token}")


def _command_argv(command):
    if not command:
        raise ValidationError("missing_field", "command")
    try:
        argv = shlex.split(command)
    except ValueError as e:
        raise ValidationError("unsafe_argument", "command") from e
    if not argv:
        raise ValidationError("missing_field", "command")
    # Run without a shell; only the program name is restricted.
    safe_arg(argv[0], "command")
    return argv


def _process_pattern(value):
    # One argv element for pgrep/pkill -f; must not read as an option.
    if not value.strip() or value.startswith("-") or not value.isprintable():
        raise ValidationError("unsafe_argument", "processName")
    return value


async def _stop(ctx, name):
    result = await ctx.runner.run(["pkill", "-f", name])
    if result.returncode == 1:
        return False
    if not result.ok:
        raise ExecutionError(result.output or "pkill failed", code="nonzero_exit", exit_code=result.returncode)
    return True


async def process_management(params, ctx):
    action = params["action"]
    name = _process_pattern(params["processName"])

    if action == "start":
        argv = _command_argv(params.get("command"))
        pid = ctx.runner.spawn_detached(argv, cwd=ctx.cwd(None))
        return ToolResult.ok(f"Process started: {name} (pid {pid})")

    if action == "stop":
        if not await _stop(ctx, name):
            return ToolResult.fail(ExecutionError(f"no process matching {name}", code="process_not_found"))
        return ToolResult.ok(f"Process stopped: {name}")

    if action == "restart":
        argv = _command_argv(params.get("command")) if params.get("command") else None
        await _stop(ctx, name)
        if argv is None:
            return ToolResult.ok(f"Process stopped: {name} (no command given to restart)")
        pid = ctx.runner.spawn_detached(argv, cwd=ctx.cwd(None))
        return ToolResult.ok(f"Process restarted: {name} (pid {pid})")

    if action == "status":
        result = await ctx.runner.run(["pgrep", "-f", name])
        if result.ok:
            pids = ", ".join(result.stdout.split())
            return ToolResult.ok(f"Process is running: {name} (pid {pids})")
        return ToolResult.ok(f"Process is not running: {name}")

    raise ExecutionError(f"unknown action {action}")


TOOLS = [
    ToolDefinition(
        name="hello",
        description="Say hello",
        fields=(string("name", default="world"),),
        handler=hello,
    ),
    ToolDefinition(
        name="generateSecureToken",
        description="Generate secure random tokens",
        fields=(
            integer("length", default=32, minimum=16, maximum=256),
            enum("type", TOKEN_TYPES, default="hex"),
        ),
        handler=generate_secure_token,
    ),
    ToolDefinition(
        name="processManagement",
        description="Start, stop, restart or inspect a background process",
        fields=(
            enum("action", ["start", "stop", "restart", "status"], required=True),
            string("processName", required=True, description="Pattern matched against full command lines"),
            string("command", description="Command line to start; run without a shell"),
        ),
        handler=process_management,
    ),
]
