"""acai - AI coding assistant for the command line.

acai talks to several LLM vendors through one chat contract and can run
an agent loop in which the model executes shell commands before
answering.

Key components:
    - acai.llm: Provider adapters, request/message types, backend dispatch
    - acai.tools: Shell, lint and code-edit tools
    - acai.agent: Responses API agent loop with streaming JSON events
    - CLI: chat, pipe, instruct and complete commands

Quick start:
    export CLAUDE_API_KEY=...
    acai chat

    export OPENROUTER_API_KEY=...
    acai instruct --prompt "Run the tests and summarise the failures"

    echo "def add(a, b):<fim>" | acai complete
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
