"""Main CLI entry point for acai.

Provides the commands:
    acai chat [--model provider/model]
    acai pipe [--model provider/model] PROMPT...
    acai instruct [--prompt TEXT] [--streaming-json] [--max-turns N]
    acai complete [--model mistral/codestral]
    acai prompt-generator [--path DIR] [--include GLOBS] [--exclude GLOBS]
"""

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn

import click

from .. import __version__
from ..data_dir import DataDir
from ..llm.exceptions import ConfigurationError
from ..logging_config import configure_logging
from ..settings import Settings, load_settings


@dataclass
class AppContext:
    """Objects shared by every command."""

    settings: Settings
    data_dir: DataDir


def run_async(coro: Any) -> Any:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def get_app() -> AppContext:
    """AppContext of the running command."""
    return click.get_current_context().find_object(AppContext)


def read_stdin_context() -> str | None:
    """Text piped on stdin, or None when stdin is a terminal."""
    stdin = click.get_text_stream("stdin")
    if stdin.isatty():
        return None
    return stdin.read()


def fail(model: str, error: object) -> NoReturn:
    """Report a failed request on stderr and exit 1."""
    click.echo(f"Error: {model}\n\n{error}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="acai")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.option(
    "--config-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML settings file (default: ~/.config/acai/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_file: Path | None) -> None:
    """acai - AI coding assistant.

    \b
    Credentials are read from the environment:
        CLAUDE_API_KEY, OPENAI_API_KEY, MISTRAL_API_KEY,
        GOOGLE_API_KEY, OPENROUTER_API_KEY

    \b
    Examples:
        acai chat --model openai/gpt-4o
        git diff | acai pipe "Write a commit message"
        acai instruct --prompt "Fix the failing test"
        cat draft.py | acai complete
    """
    try:
        settings = load_settings(config_file)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from None

    data_dir = DataDir(settings.data_dir)
    configure_logging(data_dir.root, verbose)
    ctx.obj = AppContext(settings=settings, data_dir=data_dir)


def main() -> None:
    """Main entry point."""
    cli()


# Command modules register themselves on ``cli``
from . import chat, complete, instruct, pipe, prompt_generator  # noqa: E402,F401

if __name__ == "__main__":
    main()
