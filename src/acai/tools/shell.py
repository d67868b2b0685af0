"""Shell command tool.

Public API (the "studs"):
    ShellTool: Runs a command with ``bash -c``
    ShellArgs: Arguments accepted by the shell tool
    CommandResult: Raw outcome of a subprocess run
    execute_command: Run a command with a timeout and capture its output
    run_command: Run a command and format the result for the model
    DEFAULT_TIMEOUT_SECONDS: Timeout applied when the model gives none
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from acai.tools.base import ToolError, ToolOutput

_logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0


class ShellArgs(BaseModel):
    command: str = Field(..., min_length=1, description="The shell command to execute")
    timeout: float | None = Field(default=None, gt=0, description="Optional timeout in seconds")


class CommandResult(BaseModel):
    """Raw outcome of a subprocess run."""

    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False


async def execute_command(command: str, timeout: float, cwd: Path | None = None) -> CommandResult:
    """Run ``command`` under ``bash -c`` and capture stdout and stderr.

    On timeout the process group is killed and reaped, and the result has
    ``timed_out`` set and no exit code.

    Raises:
        ToolError: If the process could not be started
    """
    try:
        process = await asyncio.create_subprocess_exec(
            "bash",
            "-c",
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            start_new_session=True,
        )
    except OSError as e:
        raise ToolError(f"Failed to execute command: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        # bash children hold the pipes open, so the whole group goes
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        await process.wait()
        _logger.warning("Command timed out after %ss: %s", timeout, command)
        return CommandResult(timed_out=True)

    return CommandResult(
        exit_code=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


async def run_command(command: str, timeout: float, cwd: Path | None = None) -> ToolOutput:
    """Run a command and format the result for the model.

    Exit code 0 gives stdout alone. A non-zero exit gives
    ``"Exit code {n}:\\n{stdout}{stderr}"``.
    """
    result = await execute_command(command, timeout, cwd=cwd)
    if result.timed_out:
        return ToolOutput(output=f"Command timed out after {timeout:g} seconds", is_error=True)
    if result.exit_code == 0:
        return ToolOutput(output=result.stdout, exit_code=0)
    return ToolOutput(
        output=f"Exit code {result.exit_code}:\n{result.stdout}{result.stderr}",
        exit_code=result.exit_code,
        is_error=True,
    )


class ShellTool:
    """Execute shell commands on the host."""

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT_SECONDS, cwd: Path | None = None) -> None:
        self.default_timeout = default_timeout
        self.cwd = cwd

    def name(self) -> str:
        return "shell"

    def description(self) -> str:
        return (
            "Execute a shell command in the host machine's terminal. "
            "Returns the stdout/stderr output. Use for running build commands, "
            "git operations, file manipulation, etc. Does not support interactive commands."
        )

    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "command": {"type": "string", "description": "The shell command to execute"},
                "timeout": {"type": "number", "description": "Optional timeout in seconds"},
            },
            "required": ["command"],
        }

    async def call(self, arguments: str) -> ToolOutput:
        try:
            args = ShellArgs.model_validate_json(arguments)
        except ValidationError as e:
            raise ToolError(f"Invalid shell arguments: {e}") from e

        return await run_command(args.command, args.timeout or self.default_timeout, cwd=self.cwd)


__all__ = [
    "ShellTool",
    "ShellArgs",
    "CommandResult",
    "execute_command",
    "run_command",
    "DEFAULT_TIMEOUT_SECONDS",
]
