"""Prompt-generator command for acai CLI.

Walks a project directory and prints the user turn that would carry its
files, without talking to any model.
"""

from pathlib import Path

import click

from ..files import get_content_blocks, get_file_info, parse_patterns
from ..prompts import PromptBuilder
from .main import cli


def _file_tree(root: Path, paths: list[Path]) -> str:
    return "\n".join(str(p.relative_to(root)) if p.is_relative_to(root) else str(p) for p in paths)


@cli.command("prompt-generator")
@click.option(
    "--path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Project directory to walk",
)
@click.option("--include", help="Comma-separated glob patterns of files to include")
@click.option("--exclude", help="Comma-separated glob patterns of files to exclude")
def prompt_generator(path: Path, include: str | None, exclude: str | None) -> None:
    """Print a prompt holding the contents of the project files.

    \b
    Examples:
        acai prompt-generator --path src --include "*.py"
        acai prompt-generator --exclude "*/tests/*" | pbcopy
    """
    files = get_file_info(path, parse_patterns(include), parse_patterns(exclude))
    if not files:
        raise click.ClickException(f"No files matched under {path}")

    prompt = PromptBuilder().build(
        {
            "file_tree": _file_tree(path, [f.path for f in files]),
            "files": get_content_blocks(files),
        }
    )
    click.echo(prompt)
