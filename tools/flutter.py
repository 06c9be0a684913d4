from core.process import safe_arg
from core.registry import ToolDefinition
from core.schema import boolean, enum, string
from tools.common import run_tool_command

CWD = string("cwd", description="Working directory for the command")


async def flutter_create(params, ctx):
    project = safe_arg(params["projectName"], "projectName")
    argv = ["flutter", "create", f"--template={params['template']}", project]
    return await run_tool_command(ctx, argv, "Flutter project created!", params.get("cwd"))


async def flutter_run(params, ctx):
    argv = ["flutter", "run"]
    if params.get("deviceId"):
        argv += ["-d", safe_arg(params["deviceId"], "deviceId")]
    if params.get("flavor"):
        argv.append(f"--flavor={safe_arg(params['flavor'], 'flavor')}")
    if params["release"]:
        argv.append("--release")
    argv += ["-t", safe_arg(params["target"], "target")]
    return await run_tool_command(ctx, argv, "Flutter app running!", params.get("cwd"))


async def flutter_pub(params, ctx):
    argv = ["flutter", "pub", params["command"]]
    if params.get("packageName"):
        argv.append(safe_arg(params["packageName"], "packageName"))
    return await run_tool_command(ctx, argv, "Pub command completed!", params.get("cwd"))


async def flutter_build(params, ctx):
    argv = ["flutter", "build", params["platform"]]
    if params["release"]:
        argv.append("--release")
    if params.get("flavor"):
        argv.append(f"--flavor={safe_arg(params['flavor'], 'flavor')}")
    return await run_tool_command(ctx, argv, "Build completed!", params.get("cwd"))


TOOLS = [
    ToolDefinition(
        name="flutterCreate",
        description="Create a new Flutter project",
        fields=(
            string("projectName", required=True, description="Project name"),
            enum("template", ["app", "package", "plugin"], default="app"),
            CWD,
        ),
        handler=flutter_create,
    ),
    ToolDefinition(
        name="flutterRun",
        description="Run Flutter app",
        fields=(
            string("target", default="lib/main.dart"),
            string("deviceId"),
            string("flavor"),
            boolean("release", default=False),
            CWD,
        ),
        handler=flutter_run,
    ),
    ToolDefinition(
        name="flutterPub",
        description="Manage Flutter packages",
        fields=(
            enum("command", ["get", "add", "remove", "upgrade"], required=True),
            string("packageName"),
            CWD,
        ),
        handler=flutter_pub,
    ),
    ToolDefinition(
        name="flutterBuild",
        description="Build Flutter app",
        fields=(
            enum(
                "platform",
                ["apk", "appbundle", "ios", "web", "macos", "windows", "linux"],
                required=True,
            ),
            boolean("release", default=True),
            string("flavor"),
            CWD,
        ),
        handler=flutter_build,
    ),
]
