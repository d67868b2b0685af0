"""Tests for the generate_edits tool."""

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import click
import pytest

from acai.files import FileInfo
from acai.llm.config import Provider
from acai.llm.exceptions import ConfigurationError, ServiceUnavailableError
from acai.llm.types import AssistantMessage
from acai.tools.base import ToolError
from acai.tools.generate_edits import (
    EditBlock,
    GenerateEditsTool,
    apply_edit_block,
    format_diff,
    process_blocks,
)


def _run(coro):
    return asyncio.run(coro)


REPLY = """Here you go.
<BLOCK>
<PATH>app.py</PATH>
<SEARCH>
print("hello")
</SEARCH>
<REPLACE>
print("goodbye")
</REPLACE>
</BLOCK>
<BLOCK>
<PATH>new/util.py</PATH>
<SEARCH>
</SEARCH>
<REPLACE>
X = 1
</REPLACE>
</BLOCK>
"""


def _mock_backend(reply=REPLY):
    backend = MagicMock()
    backend.provider = Provider.ANTHROPIC
    backend.model = "claude-3-5-sonnet-20240620"
    backend.chat = AsyncMock(return_value=AssistantMessage(content=reply))
    backend.aclose = AsyncMock()
    return backend


def _files(tmp_path):
    return [FileInfo(path=tmp_path / "app.py", content='print("hello")\n')]


class TestProcessBlocks:
    """Tests for parsing SEARCH/REPLACE blocks."""

    def test_parses_blocks(self):
        blocks = process_blocks(REPLY)
        assert [b.path for b in blocks] == ["app.py", "new/util.py"]
        assert blocks[0].search.strip() == 'print("hello")'
        assert blocks[0].replace.strip() == 'print("goodbye")'
        assert blocks[1].search.strip() == ""

    def test_no_blocks(self):
        assert process_blocks("No changes needed.") == []

    def test_unterminated_block(self):
        blocks = process_blocks("<BLOCK><PATH>a.py</PATH><SEARCH>x</SEARCH><REPLACE>y</REPLACE>")
        assert blocks == [EditBlock(path="a.py", search="x", replace="y")]

    def test_missing_tags_give_empty_fields(self):
        assert process_blocks("<BLOCK><PATH>a.py</PATH></BLOCK>") == [EditBlock(path="a.py")]


class TestApplyEditBlock:
    """Tests for applying one edit to the filesystem."""

    def test_search_and_replace(self, tmp_path):
        target = tmp_path / "app.py"
        target.write_text('print("hello")\nprint("hello")\n')

        apply_edit_block(EditBlock(path="app.py", search='\nprint("hello")\n', replace='print("bye")'), tmp_path)

        assert target.read_text() == 'print("bye")\nprint("bye")\n'

    def test_empty_search_replaces_whole_file(self, tmp_path):
        target = tmp_path / "app.py"
        target.write_text("old\n")

        apply_edit_block(EditBlock(path="app.py", search="\n", replace="\nnew\n"), tmp_path)

        assert target.read_text() == "new"

    def test_empty_search_creates_file(self, tmp_path):
        apply_edit_block(EditBlock(path="pkg/mod.py", replace="X = 1"), tmp_path)
        assert (tmp_path / "pkg" / "mod.py").read_text() == "X = 1"

    def test_missing_file_with_search_is_skipped(self, tmp_path):
        apply_edit_block(EditBlock(path="gone.py", search="x", replace="y"), tmp_path)
        assert not (tmp_path / "gone.py").exists()

    def test_absolute_path_ignores_root(self, tmp_path):
        target = tmp_path / "abs.py"
        apply_edit_block(EditBlock(path=str(target), replace="A = 1"), Path("/nonexistent"))
        assert target.read_text() == "A = 1"


class TestFormatDiff:
    """Tests for diff rendering."""

    def test_unified_diff(self):
        diff = format_diff(EditBlock(path="app.py", search="a\nb", replace="a\nc"))
        assert diff.splitlines() == ["--- a/app.py", "+++ b/app.py", "@@ -1,2 +1,2 @@", " a", "-b", "+c"]


class TestGenerateEditsTool:
    """Tests for the generate_edits tool interface."""

    def test_definition(self):
        tool = GenerateEditsTool([])
        assert tool.name() == "generate_edits"
        assert tool.parameters()["required"] == ["instructions"]

    def test_prompt_includes_files_and_instructions(self, tmp_path):
        tool = GenerateEditsTool(_files(tmp_path))
        prompt = tool.build_prompt("Say goodbye")
        assert "Say goodbye" in prompt
        assert f"File: {tmp_path / 'app.py'}" in prompt
        assert 'print("hello")' in prompt

    def test_applies_confirmed_edits(self, tmp_path):
        (tmp_path / "app.py").write_text('print("hello")\n')
        backend = _mock_backend()
        echoed = []
        tool = GenerateEditsTool(
            _files(tmp_path), backend=backend, confirm=lambda: True, echo=echoed.append, root=tmp_path
        )

        result = _run(tool.call(json.dumps({"instructions": "Say goodbye"})))

        assert result.output == "Changes applied."
        assert (tmp_path / "app.py").read_text() == 'print("goodbye")\n'
        assert (tmp_path / "new" / "util.py").read_text() == "X = 1"
        assert any("--- a/app.py" in line for line in echoed)
        request = backend.chat.call_args.args[0]
        assert request.system_prompt.startswith("You are acai")
        assert "Say goodbye" in request.messages[-1].content
        backend.aclose.assert_not_called()

    def test_rejected_edits_leave_files(self, tmp_path):
        (tmp_path / "app.py").write_text('print("hello")\n')
        tool = GenerateEditsTool(
            _files(tmp_path), backend=_mock_backend(), confirm=lambda: False, echo=lambda s: None, root=tmp_path
        )

        result = _run(tool.call(json.dumps({"instructions": "Say goodbye"})))

        assert result.output == "Changes rejected by user."
        assert (tmp_path / "app.py").read_text() == 'print("hello")\n'

    def test_aborted_prompt_counts_as_rejection(self, tmp_path):
        (tmp_path / "app.py").write_text('print("hello")\n')
        confirm = MagicMock(side_effect=click.Abort())
        tool = GenerateEditsTool(
            _files(tmp_path), backend=_mock_backend(), confirm=confirm, echo=lambda s: None, root=tmp_path
        )

        result = _run(tool.call(json.dumps({"instructions": "Say goodbye"})))

        assert result.output == "Changes rejected by user."
        assert (tmp_path / "app.py").read_text() == 'print("hello")\n'

    def test_undecodable_file_becomes_tool_error(self, tmp_path):
        (tmp_path / "app.py").write_bytes(b"\xff\xfe\x00bad")
        tool = GenerateEditsTool(
            _files(tmp_path), backend=_mock_backend(), confirm=lambda: True, echo=lambda s: None, root=tmp_path
        )

        with pytest.raises(ToolError, match="Failed to apply edits"):
            _run(tool.call(json.dumps({"instructions": "Say goodbye"})))

    def test_no_blocks(self, tmp_path):
        confirm = MagicMock()
        tool = GenerateEditsTool(_files(tmp_path), backend=_mock_backend("Nothing to do."), confirm=confirm)

        result = _run(tool.call(json.dumps({"instructions": "Nothing"})))

        assert result.output == "No edits proposed."
        confirm.assert_not_called()

    def test_no_files(self):
        with pytest.raises(ToolError, match="no files were provided"):
            _run(GenerateEditsTool([], backend=_mock_backend()).call('{"instructions": "x"}'))

    @pytest.mark.parametrize("arguments", ["{", "{}", '{"instructions": ""}', "[]"])
    def test_bad_arguments(self, tmp_path, arguments):
        tool = GenerateEditsTool(_files(tmp_path), backend=_mock_backend())
        with pytest.raises(ToolError):
            _run(tool.call(arguments))

    def test_backend_error_becomes_tool_error(self, tmp_path):
        backend = _mock_backend()
        backend.chat = AsyncMock(side_effect=ServiceUnavailableError())
        tool = GenerateEditsTool(_files(tmp_path), backend=backend)

        with pytest.raises(ToolError, match="Failed to complete tool request: Service unavailable"):
            _run(tool.call('{"instructions": "x"}'))

    def test_invalid_edit_model(self, tmp_path):
        tool = GenerateEditsTool(_files(tmp_path), model="nope")
        with pytest.raises(ToolError, match="Invalid edit model nope"):
            _run(tool.call('{"instructions": "x"}'))

    def test_creates_and_closes_own_backend(self, tmp_path):
        backend = _mock_backend("Nothing to do.")
        with patch("acai.tools.generate_edits.create_backend", return_value=backend) as mock_create:
            tool = GenerateEditsTool(_files(tmp_path), model="anthropic/haiku")
            _run(tool.call('{"instructions": "x"}'))

        mock_create.assert_called_once_with("anthropic/haiku")
        backend.aclose.assert_awaited_once()

    def test_missing_key_becomes_tool_error(self, tmp_path):
        with patch("acai.tools.generate_edits.create_backend", side_effect=ConfigurationError("Error: CLAUDE_API_KEY not set.")):
            tool = GenerateEditsTool(_files(tmp_path))
            with pytest.raises(ToolError, match="CLAUDE_API_KEY"):
                _run(tool.call('{"instructions": "x"}'))
