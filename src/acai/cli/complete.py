"""Fill-in-the-middle completion command for acai CLI.

Reads code from stdin. Text before the first ``<fim>`` marker is the
prefix and text after it the suffix; the model writes the middle.
"""

import click

from ..llm.config import Provider, parse_provider_spec
from ..llm.exceptions import BackendError, ConfigurationError, ProviderSpecError
from ..llm.factory import create_backend
from ..llm.providers.mistral import MistralBackend
from .main import cli, fail, get_app, read_stdin_context, run_async

FIM_MARKER = "<fim>"


def split_fim(text: str) -> tuple[str, str | None]:
    """Split on the first FIM marker into (prefix, suffix or None)."""
    prefix, marker, suffix = text.partition(FIM_MARKER)
    return prefix, suffix if marker else None


async def _complete(
    backend: MistralBackend, prefix: str, suffix: str | None, temperature: float | None, max_tokens: int | None
) -> str:
    async with backend:
        return await backend.complete(prefix, suffix, temperature=temperature, max_tokens=max_tokens)


@cli.command()
@click.option("--model", help="Mistral model as provider/model (default: mistral/codestral)")
@click.option("--temperature", type=float, help="Sampling temperature")
@click.option("--max-tokens", type=int, help="Maximum tokens to generate")
def complete(model: str | None, temperature: float | None, max_tokens: int | None) -> None:
    """Complete code piped on stdin at the <fim> marker.

    \b
    Examples:
        printf 'def add(a, b):\\n    <fim>\\n' | acai complete
    """
    app = get_app()
    settings = app.settings
    model = model or settings.model_for("complete")
    if temperature is None:
        temperature = settings.temperature
    if max_tokens is None:
        max_tokens = settings.max_tokens

    text = read_stdin_context()
    if not text:
        raise click.UsageError("Pipe the code to complete on stdin.")

    try:
        spec = parse_provider_spec(model)
        if spec.provider is not Provider.MISTRAL:
            raise ProviderSpecError("Completion is only supported for mistral models")
        backend = create_backend(spec)
    except (ProviderSpecError, ConfigurationError) as e:
        fail(model, e)

    prefix, suffix = split_fim(text)
    try:
        middle = run_async(_complete(backend, prefix, suffix, temperature, max_tokens))
    except BackendError as e:
        fail(model, e)

    click.echo(f"{prefix}{middle}{suffix or ''}")
