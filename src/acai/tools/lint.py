"""Lint tool: runs the project's lint command and returns its report.

Public API (the "studs"):
    LintTool: Runs a configured lint command
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from acai.tools.base import ToolError, ToolOutput
from acai.tools.shell import DEFAULT_TIMEOUT_SECONDS, execute_command

DEFAULT_LINT_COMMAND = "ruff check ."


class LintTool:
    """Run a lint command over the code base."""

    def __init__(
        self,
        command: str = DEFAULT_LINT_COMMAND,
        cwd: Path | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.command = command
        self.cwd = cwd
        self.timeout = timeout

    def name(self) -> str:
        return "lint_code"

    def description(self) -> str:
        return (
            "Lints the provided code base using a specified command and returns the results. "
            "This function helps identify and report potential issues, style violations, or "
            "errors in the code, improving code quality and consistency."
        )

    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "instructions": {"type": "string", "description": "The reason for the linting call."},
            },
            "required": ["instructions"],
        }

    async def call(self, arguments: str) -> ToolOutput:
        # The arguments only explain why linting was requested
        try:
            json.loads(arguments or "{}")
        except json.JSONDecodeError as e:
            raise ToolError(f"Invalid lint arguments: {e}") from e

        result = await execute_command(self.command, self.timeout, cwd=self.cwd)
        if result.timed_out:
            return ToolOutput(output=f"Lint command timed out after {self.timeout:g} seconds", is_error=True)
        # Linters exit non-zero when they report issues; the report is the result
        return ToolOutput(output=result.stdout, exit_code=result.exit_code)


__all__ = ["LintTool", "DEFAULT_LINT_COMMAND"]
