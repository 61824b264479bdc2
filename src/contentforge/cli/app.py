"""Main CLI application using Typer."""
import asyncio
import logging
import os

import httpx
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from ..auth import CredentialStore
from ..config import DEFAULT_MODEL, LOG_LEVEL_VAR, WELCOME_MESSAGE
from ..conversation import ConversationWindow, DocumentState, Message
from ..errors import PipelineError
from ..orchestrator import (
    ChatReply,
    ContentUpdated,
    ErrorOutcome,
    GenerationClient,
    GenerationOrchestrator,
    OrchestrationOutcome,
)
from ..routing import ModelCatalog
from ..transport import ApiRequest, ResilientExecutor
from .providers import get_api_url, get_auth_client, get_key_value_store, get_server_providers

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="contentforge",
    help="Resilient AI content generation pipeline",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        os.getenv(LOG_LEVEL_VAR, "WARNING"),
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes")
):
    """Run the generation API."""
    import uvicorn

    uvicorn.run(
        "contentforge.cli.providers:get_server_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def models():
    """List the model catalog and which providers the server can call."""
    providers = get_server_providers(console)
    catalog = ModelCatalog()

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Provider", style="cyan")
    table.add_column("Model")
    table.add_column("Access", style="yellow")

    for descriptor in catalog:
        if descriptor.requires_user_key or descriptor.name not in providers:
            access = "your API key"
        else:
            access = "[green]server[/green]"
        for model_id in sorted(descriptor.supported_models):
            table.add_row(descriptor.label, model_id, access)

    console.print(table)


def _print_outcome(outcome: OrchestrationOutcome) -> None:
    if isinstance(outcome, ContentUpdated):
        console.print(Panel(Markdown(outcome.content), title=f"Document ({outcome.task_type.value.lower()})"))
        console.print(f"[bold green]Assistant:[/bold green] {outcome.reply}\n")
    elif isinstance(outcome, ChatReply):
        console.print(f"[bold green]Assistant:[/bold green] {outcome.reply}\n")
    elif isinstance(outcome, ErrorOutcome):
        console.print(f"[red]Error ({outcome.kind.value}): {outcome.message}[/red]\n")

    if not isinstance(outcome, ErrorOutcome) and outcome.notice:
        console.print(f"[yellow]{outcome.notice} (model: {outcome.model_used})[/yellow]\n")


@app.command()
def chat(
    model: str = typer.Option(
        DEFAULT_MODEL,
        "--model",
        "-m",
        help="Model to generate with"
    ),
    email: str = typer.Option(
        None,
        "--email",
        "-e",
        help="Sign in with this email (prompted for a password)"
    )
):
    """Interactive chat that writes and edits a document."""
    async def _chat():
        auth = get_auth_client()
        store = get_key_value_store()
        credentials = CredentialStore(auth)

        try:
            await store.connect()

            if email:
                password = typer.prompt("Password", hide_input=True)
                await auth.sign_in_with_password(email, password)

            async with httpx.AsyncClient(base_url=get_api_url()) as http:
                executor = ResilientExecutor(http, credentials)
                window = ConversationWindow(store, seed=[Message.assistant(WELCOME_MESSAGE)])
                document = DocumentState(store)
                await window.load()
                await document.load()

                orchestrator = GenerationOrchestrator(GenerationClient(executor), window, document)

                listing = await executor.execute(ApiRequest(method="GET", path="/api/models"))
                user_providers = {
                    m["provider"] for m in listing.json() if m["available"] and m["requires_user_key"]
                }
                selected = orchestrator.resolve_model(model, user_providers)
                if selected != model:
                    console.print(f"[yellow]{model} is not available, using {selected}[/yellow]")

                console.print("[bold cyan]contentforge chat[/bold cyan]")
                console.print("[dim]Commands: /new, /clear, /doc, /model <id>; 'exit' to leave[/dim]\n")
                for message in window.recent(1):
                    console.print(f"[bold green]Assistant:[/bold green] {message.content}\n")

                while True:
                    try:
                        user_input = console.input("[bold yellow]You:[/bold yellow] ").strip()
                    except (KeyboardInterrupt, EOFError):
                        console.print("\n[dim]Goodbye![/dim]")
                        break

                    if not user_input:
                        continue
                    if user_input.lower() in ('exit', 'quit', 'q'):
                        console.print("[dim]Goodbye![/dim]")
                        break
                    if user_input == "/new":
                        await orchestrator.new_chat()
                        console.print("[dim]New chat started.[/dim]\n")
                        continue
                    if user_input == "/clear":
                        await orchestrator.clear_history()
                        console.print("[dim]Chat history cleared.[/dim]\n")
                        continue
                    if user_input == "/doc":
                        console.print(Panel(Markdown(document.content or "_(empty)_"), title="Document"))
                        continue
                    if user_input.startswith("/model "):
                        requested = user_input.split(" ", 1)[1].strip()
                        selected = orchestrator.resolve_model(requested, user_providers)
                        console.print(f"[dim]Using {selected}[/dim]\n")
                        continue

                    with console.status("[dim]Thinking...[/dim]"):
                        outcome = await orchestrator.handle(user_input, selected)
                    _print_outcome(outcome)

        except PipelineError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            credentials.close()
            await store.disconnect()
            await auth.close()

    asyncio.run(_chat())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
