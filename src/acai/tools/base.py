"""Tool protocol, result type and registry.

Public API (the "studs"):
    ToolOutput: Result of running a tool
    ToolError: Tool-level failure, reported to the model as text
    CallableTool: Protocol for tools that can be executed
    ToolRegistry: Name -> tool lookup and dispatch
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from acai.llm.types import ToolDefinition

_logger = logging.getLogger(__name__)


class ToolOutput(BaseModel):
    """Result of running a tool.

    A failing command is still a ToolOutput (with ``exit_code`` and
    ``is_error`` set); only failures to run the tool at all raise ToolError.
    """

    output: str = Field(..., description="Text handed back to the model")
    exit_code: int | None = Field(default=None, description="Process exit code, when a process ran")
    is_error: bool = Field(default=False, description="True when the tool did not succeed")


class ToolError(Exception):
    """A tool could not be executed (bad arguments, unknown tool, I/O failure)."""

    pass


@runtime_checkable
class CallableTool(ToolDefinition, Protocol):
    """A ToolDefinition that can also be executed."""

    async def call(self, arguments: str) -> ToolOutput:
        """Run the tool with raw JSON arguments.

        Raises:
            ToolError: If the arguments are invalid or the tool cannot run
        """
        ...


class ToolRegistry:
    """Registry of callable tools, keyed by name."""

    def __init__(self, tools: Iterable[CallableTool] = ()) -> None:
        self._tools: dict[str, CallableTool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: CallableTool) -> None:
        name = tool.name()
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        self._tools[name] = tool

    def get(self, name: str) -> CallableTool | None:
        return self._tools.get(name)

    def definitions(self) -> list[CallableTool]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    async def execute(self, name: str, arguments: str) -> ToolOutput:
        """Run the named tool.

        Raises:
            ToolError: If no tool has that name, or the tool itself fails
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolError(f"Unknown tool: {name}")
        _logger.debug("Executing tool %s with arguments %s", name, arguments)
        return await tool.call(arguments)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


__all__ = ["ToolOutput", "ToolError", "CallableTool", "ToolRegistry"]
