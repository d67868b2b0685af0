"""Pipe command for acai CLI.

Sends piped stdin as context together with the prompt and prints the
plain answer, for use in shell pipelines.
"""

import click

from ..llm.config import parse_provider_spec
from ..llm.exceptions import BackendError, ConfigurationError, ProviderSpecError
from ..llm.factory import create_backend
from ..llm.session import ChatSession
from .main import cli, fail, get_app, read_stdin_context, run_async

SYSTEM_PROMPT = (
    "You are a helpful coding assistant. Provide the answer and only the answer. "
    "The answer should be in plain text without Markdown formatting."
)

DEFAULT_TEMPERATURE = 0.2


async def _ask(session: ChatSession, context: str | None, prompt: str) -> str:
    try:
        if context and prompt:
            session.add_user_message(context)
            return await session.send(prompt)
        return await session.send(prompt or context or "")
    finally:
        await session.backend.aclose()


@cli.command()
@click.option("--model", help="Model as provider/model (default: openai/gpt-4o)")
@click.option("--temperature", "-t", type=float, help="Sampling temperature (default: 0.2)")
@click.argument("prompt", nargs=-1)
def pipe(model: str | None, temperature: float | None, prompt: tuple[str, ...]) -> None:
    """Answer PROMPT using piped stdin as context.

    \b
    Examples:
        git diff | acai pipe Write a commit message for this change
        acai pipe --model anthropic/haiku "What does chmod 750 mean?"
    """
    app = get_app()
    settings = app.settings
    model = model or settings.model_for("pipe")
    if temperature is None:
        temperature = settings.temperature if settings.temperature is not None else DEFAULT_TEMPERATURE

    context = read_stdin_context()
    prompt_text = " ".join(prompt).strip()
    if not prompt_text and not (context and context.strip()):
        raise click.UsageError("Provide a prompt or pipe context on stdin.")

    try:
        spec = parse_provider_spec(model)
        session = ChatSession(create_backend(spec), spec, SYSTEM_PROMPT, temperature=temperature)
    except (ProviderSpecError, ConfigurationError) as e:
        fail(model, e)

    try:
        answer = run_async(_ask(session, context, prompt_text))
    except BackendError as e:
        fail(model, e)

    click.echo(answer)
