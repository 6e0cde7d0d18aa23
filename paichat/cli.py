"""
PAI Chat CLI

Terminal front-end for the chat relay.

Usage:
    paichat serve                          # Run the relay API server
    paichat chat                           # Interactive REPL mode
    paichat ask "Explain TCP slow start"   # Single question mode
    paichat image "a cat in a spacesuit"   # Generate one image
    paichat history                        # List saved conversations
    paichat connect https://host/api/proxy # Set relay endpoint
    paichat status                         # Show client configuration
    paichat reset --yes                    # Forget saved preferences and history
"""

import asyncio
import base64
import binascii
import logging
import sys
from pathlib import Path
from urllib.parse import urlparse

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from paichat import __version__
from paichat.client import ChatSession, RelayClient
from paichat.config import clear_settings_cache, get_settings
from paichat.conversations import ConversationStore, JsonFileStorage
from paichat.errors import NotFound, PaiChatError
from paichat.models.conversation import Message
from paichat.settings_store import (
    HISTORY_PATH_KEY,
    RELAY_URL_KEY,
    apply_config_defaults,
    clear_config,
    set_value,
)

console = Console()

HELP_TEXT = """\
[bold]Commands[/bold]
  /new               start a new conversation
  /list              list conversations (pinned first)
  /open <n|id>       switch to a conversation
  /pin [n|id]        pin or unpin (default: current)
  /delete [n|id]     delete a conversation (default: current)
  /image <prompt>    generate an image in this conversation
  /help              show this help
  /exit              leave"""


def configure_cli_logging() -> None:
    logging.basicConfig(level=logging.WARNING)
    for logger_name in ("paichat", "httpx", "httpcore"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)


# ============================================================================
# Helpers
# ============================================================================


def _build_session() -> ChatSession:
    """Create a chat session from persisted preferences and settings."""
    apply_config_defaults()
    clear_settings_cache()
    settings = get_settings()
    store = ConversationStore(
        JsonFileStorage(settings.client.history_path),
        storage_key=settings.client.storage_key,
    )
    relay = RelayClient(settings.client.relay_url, timeout=settings.client.timeout)
    return ChatSession(store, relay)


def _should_exit_chat(query: str) -> bool:
    return query.strip().lower() in {"exit", "quit", "/exit", "/quit", ":q"}


def _resolve_conversation(session: ChatSession, reference: str | None) -> str:
    """Map a listing position (1-based), an id, or nothing (current) to an id."""
    if not reference:
        if session.active_id is None:
            raise NotFound("<none>")
        return session.active_id
    reference = reference.strip()
    if reference.isdigit():
        listing = session.store.list_conversations()
        position = int(reference)
        if 1 <= position <= len(listing):
            return listing[position - 1][0]
        raise NotFound(reference)
    session.store.get_conversation(reference)
    return reference


def _save_image(payload: str, directory: Path, name: str, output: Path | None = None) -> Path:
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise click.ClickException(f"Relay returned invalid image data: {exc}") from exc
    target = output or directory / f"{name}.png"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    return target


def _history_table(session: ChatSession) -> Table:
    table = Table(title="Conversations", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Pin", justify="center")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Messages", justify="right")

    for position, (conversation_id, conversation) in enumerate(
        session.store.list_conversations(), start=1
    ):
        marker = "*" if conversation_id == session.active_id else ""
        table.add_row(
            f"{position}{marker}",
            "📌" if conversation.is_pinned else "",
            conversation_id,
            ChatSession.title(conversation)[:60],
            str(len(conversation.messages)),
        )
    return table


def _print_message(message: Message, image_path: Path | None = None) -> None:
    if message.content_type == "image":
        label = str(image_path) if image_path else f"{len(message.content)} base64 chars"
        console.print(f"[magenta]Model:[/magenta] [image] {label}")
        return
    if message.role == "user":
        console.print(f"[bold cyan]You:[/bold cyan] {message.content}")
        return
    console.print("[bold green]Model:[/bold green]")
    console.print(Markdown(message.content))


def _print_conversation(session: ChatSession, conversation_id: str) -> None:
    messages = session.open_conversation(conversation_id)
    conversation = session.store.get_conversation(conversation_id)
    console.print(
        Panel.fit(
            f"[bold]{ChatSession.title(conversation)}[/bold]\n[dim]{conversation_id}[/dim]",
            border_style="blue",
        )
    )
    for message in messages:
        _print_message(message)


async def _handle_command(session: ChatSession, line: str) -> None:
    """Run one slash command inside the REPL."""
    command, _, argument = line.strip().partition(" ")
    command = command.lower()
    argument = argument.strip()

    if command == "/help":
        console.print(HELP_TEXT)
    elif command == "/new":
        conversation_id = session.new_conversation()
        console.print(f"[green]✓ New conversation {conversation_id}[/green]")
    elif command == "/list":
        console.print(_history_table(session))
    elif command == "/open":
        conversation_id = _resolve_conversation(session, argument)
        _print_conversation(session, conversation_id)
    elif command == "/pin":
        conversation_id = _resolve_conversation(session, argument or None)
        pinned = session.toggle_pin(conversation_id)
        console.print(f"[green]✓ {'Pinned' if pinned else 'Unpinned'} {conversation_id}[/green]")
    elif command == "/delete":
        conversation_id = _resolve_conversation(session, argument or None)
        if not click.confirm(
            f"Are you sure you want to delete {conversation_id}?", default=False
        ):
            return
        new_active = session.delete_conversation(conversation_id)
        console.print(f"[green]✓ Deleted {conversation_id}[/green]")
        if new_active is not None:
            _print_conversation(session, new_active)
    elif command == "/image":
        if not argument:
            console.print("[yellow]Usage: /image <prompt>[/yellow]")
            return
        settings = get_settings()
        conversation_id = session.active_id or session.new_conversation()
        with console.status("[cyan]Generating image...[/cyan]", spinner="dots"):
            message = await session.send_image(argument)
        count = len(session.store.get_conversation(conversation_id).messages)
        path = _save_image(
            message.content, settings.client.images_dir, f"{conversation_id}_{count}"
        )
        _print_message(message, image_path=path)
    else:
        console.print(f"[yellow]Unknown command {command}. Type /help.[/yellow]")


# ============================================================================
# CLI Commands
# ============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="PAI Chat")
def cli():
    """PAI Chat - Terminal client and relay for Gemini chat and image generation."""
    configure_cli_logging()


@cli.command()
@click.option("--host", default=None, help="Bind host (default: API_HOST setting).")
@click.option("--port", default=None, type=int, help="Bind port (default: API_PORT setting).")
@click.option("--reload", is_flag=True, help="Reload on code changes (development).")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the relay API server."""
    import uvicorn

    settings = get_settings()
    settings.logging.configure()
    uvicorn.run(
        "paichat.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
    )


@cli.command()
def chat():
    """Interactive REPL mode for conversations."""
    console.print(
        Panel.fit(
            "[bold green]PAI Chat Interactive Mode[/bold green]\n"
            "Type a message to chat, /help for commands, 'exit' to leave.",
            border_style="green",
        )
    )

    async def run_chat():
        session = _build_session()
        _print_conversation(session, session.start())

        while True:
            try:
                query = console.input("[bold cyan]You:[/bold cyan] ")
            except (EOFError, KeyboardInterrupt):
                console.print("\n[yellow]Goodbye![/yellow]")
                break

            if not query.strip():
                continue
            if _should_exit_chat(query):
                console.print("\n[yellow]Goodbye![/yellow]")
                break

            try:
                if query.strip().startswith("/"):
                    await _handle_command(session, query)
                    continue
                with console.status("[cyan]Thinking...[/cyan]", spinner="dots"):
                    reply = await session.send_chat(query)
                _print_message(reply)
            except PaiChatError as e:
                console.print(f"[red]Error: {e.message}[/red]")
            except click.ClickException as e:
                console.print(f"[red]Error: {e.format_message()}[/red]")

    asyncio.run(run_chat())


@cli.command()
@click.argument("text")
def ask(text: str):
    """Ask a single question in a new conversation and exit."""

    async def run_query():
        session = _build_session()
        session.store.open()
        session.new_conversation()
        with console.status("[cyan]Thinking...[/cyan]", spinner="dots"):
            return await session.send_chat(text)

    try:
        reply = asyncio.run(run_query())
    except PaiChatError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        sys.exit(1)
    _print_message(reply)


@cli.command()
@click.argument("prompt")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="File to write the PNG to (default: images directory).",
)
def image(prompt: str, output: Path | None):
    """Generate one image in a new conversation."""

    async def run_image():
        session = _build_session()
        session.store.open()
        conversation_id = session.new_conversation()
        with console.status("[cyan]Generating image...[/cyan]", spinner="dots"):
            message = await session.send_image(prompt)
        return conversation_id, message

    try:
        conversation_id, message = asyncio.run(run_image())
    except PaiChatError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        sys.exit(1)

    settings = get_settings()
    path = _save_image(message.content, settings.client.images_dir, conversation_id, output)
    console.print(f"[green]✓ Image saved to {path}[/green]")


@cli.command()
def history():
    """List saved conversations, pinned first."""
    session = _build_session()
    session.store.open()
    if not session.store.conversations:
        console.print("[dim]No conversations yet.[/dim]")
        return
    console.print(_history_table(session))


@cli.command()
@click.argument("relay_url")
@click.option(
    "--history",
    "history_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Conversation history file to use from now on.",
)
def connect(relay_url: str, history_path: Path | None):
    """Set the relay endpoint URL.

    Example:
        paichat connect https://my-relay.example.com/api/proxy
    """
    parsed = urlparse(relay_url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        console.print(
            "[red]Invalid relay URL[/red]\nExpected: https://host[:port]/api/proxy"
        )
        sys.exit(1)

    set_value(RELAY_URL_KEY, relay_url)
    console.print("[green]✓ Relay URL saved[/green]")
    console.print(f"Host: {parsed.hostname}")
    console.print(f"Path: {parsed.path or '/'}")
    if history_path is not None:
        set_value(HISTORY_PATH_KEY, str(history_path.expanduser()))
        console.print(f"History: {history_path.expanduser()}")


@cli.command()
@click.option("--keep-history", is_flag=True, help="Keep the conversation history file.")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
def reset(keep_history: bool, yes: bool):
    """Forget saved preferences and, unless kept, the conversation history."""
    apply_config_defaults()
    clear_settings_cache()
    history_path = get_settings().client.history_path

    if not yes:
        console.print(
            Panel.fit(
                "[bold red]Reset PAI Chat[/bold red]\n"
                "This clears the saved relay URL and the conversation history.",
                border_style="red",
            )
        )
        if not click.confirm("Continue?", default=False, show_default=True):
            console.print("[yellow]Reset cancelled.[/yellow]")
            return

    clear_config()
    console.print("[green]✓ Saved config cleared[/green]")

    if not keep_history and history_path.exists():
        try:
            history_path.unlink()
            console.print("[green]✓ Conversation history cleared[/green]")
        except OSError:
            console.print("[yellow]Failed to remove conversation history.[/yellow]")

    console.print("[green]Reset complete.[/green]")


@cli.command()
def status():
    """Show client configuration and history status."""
    session = _build_session()
    session.store.open()
    settings = get_settings()

    table = Table(title="PAI Chat Status", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Relay URL", settings.client.relay_url)
    table.add_row("History file", str(settings.client.history_path))
    table.add_row("Images directory", str(settings.client.images_dir))
    table.add_row("Conversations", str(len(session.store.conversations)))
    pinned = sum(1 for conversation in session.store.conversations.values() if conversation.is_pinned)
    table.add_row("Pinned", str(pinned))
    console.print(table)


def main():
    cli()


if __name__ == "__main__":
    main()
