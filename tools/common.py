from typing import Optional, Sequence

from core.context import ToolContext
from core.results import ToolResult
from core.tool_errors import ExecutionError


async def run_tool_command(
    ctx: ToolContext,
    argv: Sequence[str],
    success: str,
    cwd: Optional[str] = None,
) -> ToolResult:
    """Run ``argv`` and map the outcome onto a result carrying the combined output."""
    result = await ctx.runner.run(argv, cwd=ctx.cwd(cwd))
    if not result.ok:
        return ToolResult.fail(
            ExecutionError(
                f"{' '.join(argv)} failed\n{result.output}".rstrip(),
                code="nonzero_exit",
                exit_code=result.returncode,
            )
        )
    return ToolResult.ok(f"{success}\n{result.output}".rstrip())
