"""Instruct command for acai CLI.

Runs the agent loop: the model may call the shell tool (and, with
``--with-edit-tools``, the edit and lint tools) until it produces a
final answer.
"""

import functools
import sys
from pathlib import Path

import click

from ..agent.events import JsonLinesEventSink
from ..agent.responses import ResponsesClient
from ..files import get_file_info, parse_patterns
from ..llm.exceptions import BackendError, ConfigurationError
from ..prompts import PromptBuilder
from ..settings import Settings
from ..tools.base import ToolRegistry
from ..tools.generate_edits import GenerateEditsTool
from ..tools.lint import LintTool
from ..tools.shell import ShellTool
from .main import cli, fail, get_app, read_stdin_context, run_async

SYSTEM_PROMPT = (
    "You are a helpful AI CLI assistant that runs on the user's computer and follows their instructions."
)


def _build_tools(
    settings: Settings, with_edit_tools: bool, path: Path, include: str | None, exclude: str | None
) -> ToolRegistry:
    tools = ToolRegistry([ShellTool()])
    if with_edit_tools:
        files = get_file_info(path, parse_patterns(include), parse_patterns(exclude))
        tools.register(
            GenerateEditsTool(
                files,
                model=settings.model_for("generate_edits"),
                echo=functools.partial(click.echo, err=True),
            )
        )
        tools.register(LintTool(settings.lint_command, cwd=path))
    return tools


async def _run(client: ResponsesClient, content: str, events: JsonLinesEventSink | None) -> str | None:
    async with client:
        return await client.send(content, events)


@cli.command()
@click.option("--model", help="OpenRouter model id (default: minimax/minimax-m2.5)")
@click.option("--temperature", type=float, help="Sampling temperature (default: 0.0)")
@click.option("--max-tokens", type=int, help="Maximum output tokens per round trip")
@click.option("--top-p", type=float, help="Nucleus sampling")
@click.option("--prompt", "-p", help="Instructions (joined with any piped stdin)")
@click.option("--streaming-json", is_flag=True, help="Print each event as a line of JSON")
@click.option("--max-turns", type=click.IntRange(min=1), help="Cap on model round trips")
@click.option("--with-edit-tools", is_flag=True, help="Offer the generate_edits and lint_code tools")
@click.option(
    "--path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Project directory for the edit tools",
)
@click.option("--include", help="Comma-separated glob patterns of files to include")
@click.option("--exclude", help="Comma-separated glob patterns of files to exclude")
def instruct(
    model: str | None,
    temperature: float | None,
    max_tokens: int | None,
    top_p: float | None,
    prompt: str | None,
    streaming_json: bool,
    max_turns: int | None,
    with_edit_tools: bool,
    path: Path,
    include: str | None,
    exclude: str | None,
) -> None:
    """Let the model work through instructions using tools.

    \b
    Examples:
        acai instruct --prompt "Run the tests and fix the first failure"
        cat TODO.md | acai instruct --streaming-json
        acai instruct -p "Tidy the README" --with-edit-tools --include "*.md"
    """
    app = get_app()
    settings = app.settings
    model = model or settings.model_for("instruct")

    context = read_stdin_context()
    content = PromptBuilder().build({"prompt": prompt, "context": context})
    if not content:
        raise click.UsageError("Provide --prompt or pipe instructions on stdin.")

    tools = _build_tools(settings, with_edit_tools, path, include, exclude)
    try:
        client = ResponsesClient(
            model,
            SYSTEM_PROMPT,
            tools=tools,
            temperature=temperature if temperature is not None else settings.temperature,
            top_p=top_p if top_p is not None else settings.top_p,
            max_output_tokens=max_tokens if max_tokens is not None else settings.max_tokens,
            max_turns=max_turns if max_turns is not None else settings.max_turns,
        )
    except ConfigurationError as e:
        fail(model, e)

    events = JsonLinesEventSink() if streaming_json else None
    try:
        result = run_async(_run(client, content, events))
    except BackendError as e:
        app.data_dir.save_messages(client.get_message_history())
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    app.data_dir.save_messages(client.get_message_history())

    # Streaming mode has already printed the result event
    if not streaming_json and result is not None:
        click.echo(result)
