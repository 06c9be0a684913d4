"""
External command execution.

Commands are always argument vectors handed straight to the OS; no shell ever
interprets them. Identifier-like parameter values are additionally restricted to a
small allow-list before they become argv elements.
"""

from __future__ import annotations

import logging
import re
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import anyio

from core.tool_errors import ExecutionError, ValidationError

logger = logging.getLogger(__name__)

SAFE_ARG = re.compile(r"^[A-Za-z0-9_./:@=+,^~-]+$")
OPTION_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")

PathLike = Union[str, Path]


def safe_arg(value: str, field: str, *, allow_option: bool = False) -> str:
    """
    Return ``value`` unchanged if it is safe to use as a single argv element.

    Rejects empty values, anything outside ``[A-Za-z0-9_./:@=+,^~-]`` (so no spaces,
    quotes, ``;``, ``|``, ``&``, ``$``, backticks or redirections) and, unless
    ``allow_option`` is set, values starting with ``-`` that a program would parse
    as an option.
    """
    if not value or not SAFE_ARG.match(value):
        raise ValidationError("unsafe_argument", field)
    if value.startswith("-") and not allow_option:
        raise ValidationError("unsafe_argument", field)
    return value


def safe_args(value: str, field: str, *, allow_option: bool = True) -> list[str]:
    """Split a whitespace separated parameter and check every token."""
    tokens = value.split()
    if not tokens:
        raise ValidationError("unsafe_argument", field)
    return [safe_arg(token, field, allow_option=allow_option) for token in tokens]


def option_name(value: str, field: str) -> str:
    if not OPTION_NAME.match(value):
        raise ValidationError("unsafe_argument", field)
    return value


@dataclass(frozen=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        parts = [p for p in (self.stdout.rstrip("\n"), self.stderr.rstrip("\n")) if p]
        return "\n".join(parts)


class CommandRunner:
    """Runs commands to completion; no timeout is applied."""

    def __init__(self) -> None:
        self._exit_codes: dict[int, int] = {}

    async def run(self, argv: Sequence[str], cwd: Optional[PathLike] = None) -> CommandResult:
        argv = tuple(argv)
        logger.info("exec %s (cwd=%s)", " ".join(argv), cwd or ".")
        try:
            proc = await anyio.run_process(list(argv), cwd=cwd, check=False)
        except FileNotFoundError as e:
            raise ExecutionError(
                f"command not found: {argv[0]}", code="command_not_found", cause=e
            ) from e
        except OSError as e:
            raise ExecutionError(f"failed to start {argv[0]}: {e}", code="spawn_failed", cause=e) from e

        return CommandResult(
            argv=argv,
            returncode=proc.returncode,
            stdout=proc.stdout.decode("utf-8", errors="replace"),
            stderr=proc.stderr.decode("utf-8", errors="replace"),
        )

    async def check(self, argv: Sequence[str], cwd: Optional[PathLike] = None) -> CommandResult:
        """Like :meth:`run` but a non-zero exit becomes an :class:`ExecutionError`."""
        result = await self.run(argv, cwd=cwd)
        if not result.ok:
            raise ExecutionError(
                result.output or f"{argv[0]} failed",
                code="nonzero_exit",
                exit_code=result.returncode,
            )
        return result

    def spawn_detached(self, argv: Sequence[str], cwd: Optional[PathLike] = None) -> int:
        """Start a process in its own session and return its pid without waiting."""
        logger.info("spawn %s (cwd=%s)", " ".join(argv), cwd or ".")
        try:
            proc = subprocess.Popen(
                list(argv),
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise ExecutionError(f"failed to start {argv[0]}: {e}", code="spawn_failed", cause=e) from e
        threading.Thread(target=self._reap, args=(proc,), name=f"reap-{proc.pid}", daemon=True).start()
        return proc.pid

    def _reap(self, proc: subprocess.Popen) -> None:
        returncode = proc.wait()
        self._exit_codes[proc.pid] = returncode
        logger.info("pid %s exited with code %s", proc.pid, returncode)

    def exit_code(self, pid: int) -> Optional[int]:
        """Exit code of a child started by :meth:`spawn_detached`, or None while it runs."""
        return self._exit_codes.get(pid)
