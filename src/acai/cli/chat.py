"""Interactive chat command for acai CLI.

Reads one prompt per line. ``/bye`` ends the session and ``/model
provider/model`` switches backend (starting a fresh history). The
history of each backend used is saved to the data directory.
"""

import click

from ..llm.config import parse_provider_spec
from ..llm.exceptions import BackendError, ConfigurationError, ProviderSpecError
from ..llm.factory import create_backend
from ..llm.session import ChatSession
from ..prompts import PromptBuilder
from .main import AppContext, cli, get_app, run_async

SYSTEM_PROMPT = (
    "You are a helpful coding assistant. Provide answers in markdown format unless "
    "instructed otherwise. If the request is ambiguous, ask questions. If you don't know "
    "the answer, admit you don't."
)


def _new_session(
    model: str, temperature: float | None, max_tokens: int | None, top_p: float | None
) -> ChatSession:
    spec = parse_provider_spec(model)
    return ChatSession(
        create_backend(spec),
        spec,
        SYSTEM_PROMPT,
        temperature=temperature,
        top_p=top_p,
        max_tokens=max_tokens,
    )


def _save(app: AppContext, session: ChatSession) -> None:
    history = session.get_message_history()
    if any(m.role == "user" for m in history):
        app.data_dir.save_messages(history)


async def _chat_loop(
    app: AppContext, session: ChatSession, temperature: float | None, max_tokens: int | None, top_p: float | None
) -> None:
    prompt_builder = PromptBuilder()
    try:
        while True:
            try:
                line = click.prompt(">", prompt_suffix=" ", default="", show_default=False)
            except click.Abort:
                break

            line = line.strip()
            if not line:
                continue
            if line == "/bye":
                break

            if line.startswith("/model"):
                chosen = line[len("/model") :].strip()
                try:
                    new_session = _new_session(chosen, temperature, max_tokens, top_p)
                except (ProviderSpecError, ConfigurationError) as e:
                    click.echo(f"Error: {chosen}\n\n{e}", err=True)
                    continue
                _save(app, session)
                await session.backend.aclose()
                session = new_session
                click.echo(f"\nModel set to {session.spec}\n")
                continue

            prompt_builder.add_variable("prompt", line)
            try:
                answer = await session.send(prompt_builder.build())
            except BackendError as e:
                click.echo(f"Error: {session.spec}\n\n{e}", err=True)
                continue
            finally:
                prompt_builder.clear_variables()

            click.echo(f"\n{answer}\n")
    finally:
        _save(app, session)
        await session.backend.aclose()


@cli.command()
@click.option("--model", help="Model as provider/model (default: anthropic/sonnet)")
@click.option("--temperature", type=float, help="Sampling temperature")
@click.option("--max-tokens", type=int, help="Maximum tokens per reply")
@click.option("--top-p", type=float, help="Nucleus sampling")
def chat(model: str | None, temperature: float | None, max_tokens: int | None, top_p: float | None) -> None:
    """Chat with a model interactively.

    \b
    Commands inside the session:
        /model provider/model   Switch backend
        /bye                    Exit

    \b
    Examples:
        acai chat
        acai chat --model openai/gpt-4o --temperature 0.2
    """
    app = get_app()
    settings = app.settings
    model = model or settings.model_for("chat")
    temperature = temperature if temperature is not None else settings.temperature
    max_tokens = max_tokens if max_tokens is not None else settings.max_tokens
    top_p = top_p if top_p is not None else settings.top_p

    try:
        session = _new_session(model, temperature, max_tokens, top_p)
    except (ProviderSpecError, ConfigurationError) as e:
        raise click.ClickException(f"{model}\n\n{e}") from None

    run_async(_chat_loop(app, session, temperature, max_tokens, top_p))
