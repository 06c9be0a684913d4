import json
from pathlib import Path

import anyio

from core.process import safe_arg, safe_args
from core.registry import ToolDefinition
from core.results import ToolResult
from core.schema import boolean, enum, string
from tools.common import run_tool_command

CWD = string("cwd", description="Working directory for the command")


async def npm_init(params, ctx):
    base = ctx.cwd(None)
    path = Path(params["projectName"]).expanduser()
    if base is not None and not path.is_absolute():
        path = base / path
    project = anyio.Path(path)
    await project.mkdir(parents=True, exist_ok=True)

    result = await run_tool_command(ctx, ["npm", "init", "-y"], "Node.js initialized!", str(project))
    if result.is_error or params["type"] != "module":
        return result

    package_json = project / "package.json"
    data = json.loads(await package_json.read_text(encoding="utf-8"))
    data["type"] = "module"
    await package_json.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return ToolResult.ok(f"{result.text}\npackage.json type set to module")


async def npm_install(params, ctx):
    argv = ["npm", "install"]
    if params["global"]:
        argv.append("-g")
    if params["dev"]:
        argv.append("--save-dev")
    argv += safe_args(params["packages"], "packages", allow_option=False)
    return await run_tool_command(ctx, argv, "Packages installed!", params.get("cwd"))


async def node_run(params, ctx):
    script = safe_arg(params["script"], "script")
    is_file = "." in script
    if params["watch"]:
        argv = ["nodemon", script] if is_file else ["nodemon", "--exec", f"npm run {script}"]
    else:
        argv = ["node", script] if is_file else ["npm", "run", script]
    if params.get("args"):
        extra = safe_args(params["args"], "args")
        # npm needs "--" to forward arguments to the script
        argv += extra if is_file or params["watch"] else ["--", *extra]
    return await run_tool_command(ctx, argv, "Node executed!", params.get("cwd"))


TOOLS = [
    ToolDefinition(
        name="npmInit",
        description="Initialize Node.js project",
        fields=(
            string("projectName", required=True, description="Project directory, created if missing"),
            enum("type", ["commonjs", "module"], default="commonjs"),
        ),
        handler=npm_init,
    ),
    ToolDefinition(
        name="npmInstall",
        description="Install npm packages",
        fields=(
            string("packages", required=True, description="Space separated package specs"),
            boolean("dev", default=False),
            boolean("global", default=False),
            CWD,
        ),
        handler=npm_install,
    ),
    ToolDefinition(
        name="nodeRun",
        description="Run Node.js script",
        fields=(
            string("script", required=True, description="File to run, or an npm script name"),
            boolean("watch", default=False),
            string("args", description="Space separated arguments"),
            CWD,
        ),
        handler=node_run,
    ),
]
