from core.process import option_name, safe_arg
from core.registry import ToolDefinition
from core.schema import enum, integer, string, string_map
from tools.common import run_tool_command

CWD = string("cwd", description="Laravel project directory")

MAKE_TYPES = ["model", "controller", "migration", "seed", "factory", "middleware", "request"]


def _options(options, field):
    argv = []
    for key, value in (options or {}).items():
        key = option_name(key, field)
        if value == "true":
            argv.append(f"--{key}")
        else:
            argv.append(f"--{key}={safe_arg(value, field, allow_option=True)}")
    return argv


async def laravel_create(params, ctx):
    argv = ["composer", "create-project", "laravel/laravel", safe_arg(params["projectName"], "projectName")]
    if params.get("version"):
        argv.append(safe_arg(params["version"], "version"))
    return await run_tool_command(ctx, argv, "Laravel project created!", params.get("cwd"))


async def laravel_artisan(params, ctx):
    argv = ["php", "artisan", safe_arg(params["command"], "command")]
    argv += _options(params.get("arguments"), "arguments")
    return await run_tool_command(ctx, argv, "Artisan executed!", params.get("cwd"))


async def laravel_make(params, ctx):
    argv = ["php", "artisan", f"make:{params['type']}", safe_arg(params["name"], "name")]
    argv += _options(params.get("options"), "options")
    return await run_tool_command(ctx, argv, f"{params['type']} created!", params.get("cwd"))


async def laravel_migrate(params, ctx):
    action = params["action"]
    argv = ["php", "artisan", "migrate" if action == "migrate" else f"migrate:{action}"]
    if action == "rollback" and params.get("step"):
        argv.append(f"--step={params['step']}")
    return await run_tool_command(ctx, argv, f"Migration {action} done!", params.get("cwd"))


TOOLS = [
    ToolDefinition(
        name="laravelCreate",
        description="Create Laravel project",
        fields=(string("projectName", required=True), string("version"), CWD),
        handler=laravel_create,
    ),
    ToolDefinition(
        name="laravelArtisan",
        description="Run Laravel Artisan",
        fields=(
            string("command", required=True),
            string_map("arguments", description="Passed as --key=value"),
            CWD,
        ),
        handler=laravel_artisan,
    ),
    ToolDefinition(
        name="laravelMake",
        description="Make Laravel classes",
        fields=(
            enum("type", MAKE_TYPES, required=True),
            string("name", required=True),
            string_map("options", description='Passed as --key=value, or --key when the value is "true"'),
            CWD,
        ),
        handler=laravel_make,
    ),
    ToolDefinition(
        name="laravelMigrate",
        description="Run migrations",
        fields=(
            enum("action", ["migrate", "rollback", "fresh", "refresh"], default="migrate"),
            integer("step", minimum=1),
            CWD,
        ),
        handler=laravel_migrate,
    ),
]
