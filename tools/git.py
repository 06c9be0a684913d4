from core.process import safe_arg
from core.registry import ToolDefinition
from core.results import ToolResult
from core.schema import enum, string, string_array
from core.tool_errors import ValidationError
from tools.common import run_tool_command

ACTIONS = ["init", "status", "add", "commit", "push", "pull", "log", "branch", "checkout", "diff"]


def build_git_argv(params):
    action = params["action"]
    files = [safe_arg(f, "files") for f in params.get("files") or []]
    branch = safe_arg(params["branch"], "branch") if params.get("branch") else None
    remote = safe_arg(params["remote"], "remote")

    if action == "add":
        return ["git", "add", *(files or ["."])]
    if action == "commit":
        if not params.get("message"):
            raise ValidationError("missing_field", "message")
        # the message is a single argv element, never interpreted
        return ["git", "commit", "-m", params["message"], *files]
    if action in ("push", "pull"):
        return ["git", action, remote, *([branch] if branch else [])]
    if action == "log":
        return ["git", "log", "--oneline", "-n", "20"]
    if action == "branch":
        return ["git", "branch", *([branch] if branch else [])]
    if action == "checkout":
        if not branch:
            raise ValidationError("missing_field", "branch")
        return ["git", "checkout", branch]
    if action == "diff":
        return ["git", "diff", *(["--", *files] if files else [])]
    return ["git", action]


async def git_command(params, ctx) -> ToolResult:
    argv = build_git_argv(params)
    return await run_tool_command(ctx, argv, f"git {params['action']} done!", params.get("cwd"))


TOOLS = [
    ToolDefinition(
        name="gitCommand",
        description="Run a git version-control command in a repository",
        fields=(
            enum("action", ACTIONS, required=True),
            string_array("files", description="Paths for add/commit/diff"),
            string("message", description="Commit message"),
            string("branch"),
            string("remote", default="origin"),
            string("cwd", description="Repository directory"),
        ),
        handler=git_command,
    ),
]
