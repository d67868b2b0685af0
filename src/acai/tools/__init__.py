"""Tools the model can call.

A tool is any object with ``name()``, ``description()``, ``parameters()``
and ``async call(arguments)``; there is no base class to inherit from.
"""

from .base import CallableTool, ToolError, ToolOutput, ToolRegistry
from .generate_edits import GenerateEditsTool
from .lint import LintTool
from .shell import ShellTool

__all__ = [
    "CallableTool",
    "ToolError",
    "ToolOutput",
    "ToolRegistry",
    "ShellTool",
    "LintTool",
    "GenerateEditsTool",
]
