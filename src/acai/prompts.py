"""Prompt assembly for user turns.

Public API (the "studs"):
    PromptBuilder: Collects prompt variables and renders the user turn
"""

from __future__ import annotations

from typing import Any


class PromptBuilder:
    """Render a user turn from named variables.

    Recognised variables:
        prompt: The user's instruction
        context: Free text, usually piped from stdin
        files: List of {"path", "content"} dicts
        file_tree: Pre-rendered listing of the project files

    Unset or empty variables produce no section.
    """

    def __init__(self) -> None:
        self._variables: dict[str, Any] = {}

    def add_variable(self, name: str, value: Any) -> None:
        self._variables[name] = value

    def clear_variables(self) -> None:
        self._variables.clear()

    def build(self, data: dict[str, Any] | None = None) -> str:
        """Render the prompt.

        Args:
            data: Variables to render; defaults to those added with add_variable
        """
        variables = self._variables if data is None else data
        sections: list[str] = []

        if variables.get("prompt"):
            sections.append(str(variables["prompt"]).strip())
        if variables.get("context"):
            sections.append(str(variables["context"]).strip())
        if variables.get("file_tree"):
            sections.append(f"File tree:\n{variables['file_tree']}")
        for file in variables.get("files") or []:
            sections.append(f"Path: {file['path']}\n```\n{file['content']}\n```")

        return "\n\n".join(sections)


__all__ = ["PromptBuilder"]
