"""Code-edit tool: asks a model for SEARCH/REPLACE blocks and applies them.

The model answers with blocks of the form::

    <BLOCK>
    <PATH>src/app.py</PATH>
    <SEARCH>
    old code
    </SEARCH>
    <REPLACE>
    new code
    </REPLACE>
    </BLOCK>

Each block is shown to the user as a unified diff; the edits are applied
only after confirmation.

Public API (the "studs"):
    GenerateEditsTool: The ``generate_edits`` tool
    EditBlock: One parsed SEARCH/REPLACE edit
    process_blocks: Parse a model reply into EditBlocks
    apply_edit_block: Apply one edit to the filesystem
    format_diff: Render an edit as a unified diff
"""

from __future__ import annotations

import difflib
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
from pydantic import BaseModel

from acai.files import FileInfo
from acai.llm.config import ProviderSpec
from acai.llm.exceptions import BackendError, ConfigurationError, ProviderSpecError
from acai.llm.factory import create_backend
from acai.llm.providers.base import BaseBackend
from acai.llm.session import ChatSession
from acai.tools.base import ToolError, ToolOutput

_logger = logging.getLogger(__name__)

DEFAULT_EDIT_MODEL = "anthropic/sonnet"

SYSTEM_PROMPT = (
    "You are acai, an AI coding assistant. You specialize in helping software developers "
    "with the tasks that help them write better software. Pay close attention to the "
    "instructions given to you by the user and always follow those instructions. Return "
    "your response as markdown unless the user indicates a different return format. It is "
    "very important that you format your response according to the user instructions as "
    "that formatting will be used to accomplish specific tasks."
)

PROMPT_TEMPLATE = """
Your task is to generate edit instructions for code files by analyzing the provided code and generating SEARCH/REPLACE blocks for necessary changes. Follow these steps:

1. Carefully analyze the specific instructions:

{prompt}

2. Consider the full context of all files in the project:

{files}
3. Generate SEARCH/REPLACE blocks for each necessary change. Each block should:
   - Indicate the path of the file where the code needs to be changed. If the code should be in a new file, indicate the path where that file should live in the project structure
   - Include enough context to uniquely identify the code to be changed
   - Provide the exact replacement code, maintaining correct indentation and formatting
   - Focus on specific, targeted changes rather than large, sweeping modifications

4. Ensure that your SEARCH/REPLACE blocks:
   - Address all relevant aspects of the instructions
   - Maintain or enhance code readability and efficiency
   - Consider the overall structure and purpose of the code
   - Follow best practices and coding standards for the language
   - Maintain consistency with the project context and previous edits
   - Take into account the full context of all files in the project

5. Make sure that each SEARCH/REPLACE block can be applied to the code that would exist after the block prior to it is applied. Remember that each block will update the code in place and each subsequent block can only be applied to the updated code.

IMPORTANT: RETURN ONLY THE SEARCH/REPLACE BLOCKS. NO EXPLANATIONS OR COMMENTS.
USE THE FOLLOWING FORMAT FOR EACH BLOCK:

<BLOCK>
<PATH>The file path of the file to be edited</PATH>
<SEARCH>
Code to be replaced
</SEARCH>
<REPLACE>
New code to insert
</REPLACE>
</BLOCK>

If no changes are needed, return an empty list.
"""


class EditBlock(BaseModel):
    path: str
    search: str = ""
    replace: str = ""


def _extract(block: str, tag: str) -> str:
    start_tag, end_tag = f"<{tag}>", f"</{tag}>"
    start = block.find(start_tag)
    end = block.find(end_tag)
    if start == -1 or end == -1:
        return ""
    return block[start + len(start_tag) : end]


def process_blocks(text: str) -> list[EditBlock]:
    """Parse every ``<BLOCK>...</BLOCK>`` section of a model reply.

    Text before the first block is ignored; a block with no closing tag
    runs to the end of the reply.
    """
    edits = []
    for chunk in text.split("<BLOCK>")[1:]:
        body = chunk.split("</BLOCK>", 1)[0]
        edits.append(
            EditBlock(
                path=_extract(body, "PATH"),
                search=_extract(body, "SEARCH"),
                replace=_extract(body, "REPLACE"),
            )
        )
    return edits


def apply_edit_block(block: EditBlock, root: Path | None = None) -> None:
    """Apply one edit.

    The search and replace texts are stripped. An empty search replaces
    the whole file, or creates it when it does not exist. A non-empty
    search for a missing file is a no-op.

    Raises:
        OSError: If the file cannot be read or written
        UnicodeDecodeError: If the file is not valid text
    """
    path = Path(block.path.strip())
    if root is not None and not path.is_absolute():
        path = root / path
    search = block.search.strip()
    replace = block.replace.strip()

    if path.exists():
        content = path.read_text()
        path.write_text(replace if not search else content.replace(search, replace))
    elif not search:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(replace)
    else:
        _logger.warning("Skipping edit for missing file %s", path)


def format_diff(block: EditBlock) -> str:
    path = block.path.strip()
    diff = difflib.unified_diff(
        block.search.strip().splitlines(keepends=True),
        block.replace.strip().splitlines(keepends=True),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
    )
    return "".join(line if line.endswith("\n") else line + "\n" for line in diff)


def _confirm_edits() -> bool:
    return click.confirm("Accept these edits?", default=False, err=True)


class GenerateEditsTool:
    """Generate SEARCH/REPLACE edits with a model, show them, and apply on consent.

    Args:
        files: Project files the model may edit
        backend: Backend to ask for edits; created from ``model`` when None
        model: "provider/model" used when no backend is given
        confirm: Returns True to apply the proposed edits
        echo: Output function for the proposed diffs
        root: Directory relative edit paths are resolved against
    """

    def __init__(
        self,
        files: list[FileInfo],
        *,
        backend: BaseBackend | None = None,
        model: str = DEFAULT_EDIT_MODEL,
        confirm: Callable[[], bool] = _confirm_edits,
        echo: Callable[[str], Any] = click.echo,
        root: Path | None = None,
    ) -> None:
        self.files = files
        self._backend = backend
        self._model = model
        self._confirm = confirm
        self._echo = echo
        self._root = root

    def name(self) -> str:
        return "generate_edits"

    def description(self) -> str:
        return (
            "This function generates a set of edits that can applied to the current code base "
            "based on the specific instructions provided. This function will return the edits "
            "and give the user the ability to accept or reject the suggested edits before "
            "applying them to the code base."
        )

    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "instructions": {
                    "type": "string",
                    "description": (
                        "After the reviewing the provided code, construct a plan for the necessary "
                        "changes. These instructions will be used to determine what edits need to "
                        "made to the code base."
                    ),
                },
            },
            "required": ["instructions"],
        }

    def build_prompt(self, instructions: str) -> str:
        sections = [f"File: {f.path}\n\n{f.content}\n\n---\n" for f in self.files]
        files = "File Contents:\n\n" + "\n".join(sections) if sections else ""
        return PROMPT_TEMPLATE.format(prompt=instructions, files=files)

    async def call(self, arguments: str) -> ToolOutput:
        if not self.files:
            raise ToolError("Failed to construct prompt: no files were provided")

        try:
            args = json.loads(arguments or "{}")
        except json.JSONDecodeError as e:
            raise ToolError(f"Invalid generate_edits arguments: {e}") from e
        instructions = args.get("instructions") if isinstance(args, dict) else None
        if not isinstance(instructions, str) or not instructions:
            raise ToolError('Missing "instructions" argument')

        reply = await self._request_edits(self.build_prompt(instructions))
        blocks = process_blocks(reply)
        if not blocks:
            return ToolOutput(output="No edits proposed.")

        self._echo("Proposed edits:\n")
        for block in blocks:
            self._echo(f"Path: {block.path.strip()}\n")
            self._echo(format_diff(block))

        try:
            accepted = self._confirm()
        except click.Abort:
            accepted = False
        if not accepted:
            return ToolOutput(output="Changes rejected by user.")

        try:
            for block in blocks:
                apply_edit_block(block, self._root)
        except (OSError, UnicodeDecodeError) as e:
            raise ToolError(f"Failed to apply edits: {e}") from e
        return ToolOutput(output="Changes applied.")

    async def _request_edits(self, prompt: str) -> str:
        owns_backend = self._backend is None
        try:
            backend = self._backend or create_backend(self._model)
        except (ConfigurationError, ProviderSpecError) as e:
            raise ToolError(f"Invalid edit model {self._model}: {e}") from e
        spec = ProviderSpec(provider=backend.provider, model=backend.model)
        session = ChatSession(backend, spec, SYSTEM_PROMPT)
        try:
            return await session.send(prompt)
        except BackendError as e:
            raise ToolError(f"Failed to complete tool request: {e}") from e
        finally:
            if owns_backend:
                await backend.aclose()


__all__ = [
    "GenerateEditsTool",
    "EditBlock",
    "process_blocks",
    "apply_edit_block",
    "format_diff",
    "DEFAULT_EDIT_MODEL",
]
