"""bedrock_chat/cli.py

Command-line entry point: ``bedrock-dynamo-chat <server-script> [profile-id]``.
"""

from __future__ import annotations

# Standard Library
import argparse
import asyncio
import logging
from collections.abc import Callable, Sequence

# Third-Party Libraries
from dotenv import load_dotenv
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.theme import Theme
from rich.console import Console

# Local Modules
from bedrock_chat.bedrock import BedrockModel
from bedrock_chat.chat import ChatSession
from bedrock_chat.config import ConfigurationError, load_settings
from bedrock_chat.tool_client import ToolServerClient, ToolServerConnectionError

logger = logging.getLogger(__name__)

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
    }
)
console = Console(theme=custom_theme)

QUIT_COMMANDS: frozenset[str] = frozenset({"quit", "exit"})


def display_help(out: Console) -> None:
    out.print(
        Panel(
            "[bold]tools[/bold]  list the tools offered by the server\n"
            "[bold]clear[/bold]  forget the conversation so far\n"
            "[bold]help[/bold]   show this message\n"
            "[bold]quit[/bold]   exit\n"
            "Anything else is sent to the model.",
            title="Commands",
            border_style="cyan",
        )
    )


def display_tools(session: ChatSession, out: Console) -> None:
    """Print the tool catalog received at connect time."""
    if not session.tools:
        out.print("No tools available.", style="warning")
        return
    table = Table(title="Available tools", border_style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Description")
    for tool in session.tools:
        table.add_row(tool.name, tool.description)
    out.print(table)


async def chat_loop(
    session: ChatSession,
    out: Console,
    ask: Callable[[], str] | None = None,
) -> None:
    """Read queries until the user quits.

    Args:
        session: A connected chat session.
        out: Console for all user-facing output.
        ask: Line reader; defaults to a rich prompt on stdin.
    """
    with out.use_theme(custom_theme):
        await _read_queries(session, out, ask)


async def _read_queries(
    session: ChatSession,
    out: Console,
    ask: Callable[[], str] | None,
) -> None:
    read_line = ask or (lambda: Prompt.ask("\n[bold blue]Query[/bold blue]", console=out))
    out.print("\nMCP client with Bedrock started!", style="success")
    out.print("Type your queries, 'tools' to list tools, or 'quit' to exit.", style="info")

    while True:
        try:
            user_input = read_line().strip()
        except (KeyboardInterrupt, EOFError):
            out.print("\nGoodbye.", style="info")
            break

        if not user_input:
            continue
        command = user_input.lower()
        if command in QUIT_COMMANDS:
            out.print("Goodbye.", style="info")
            break
        if command == "tools":
            display_tools(session, out)
            continue
        if command == "clear":
            session.clear_history()
            out.print("Conversation history cleared.", style="success")
            continue
        if command == "help":
            display_help(out)
            continue

        try:
            with out.status("[bold green]Thinking...", spinner="dots"):
                response = await session.process_query(user_input)
        except Exception as exc:
            logger.error("Query failed: %s", exc, exc_info=True)
            out.print(f"\nError: {escape(str(exc))}", style="error")
            continue
        out.print("\n" + escape(response))


async def run_session(
    session: ChatSession,
    out: Console,
    ask: Callable[[], str] | None = None,
) -> int:
    """Connect, run the loop and always release the tool server.

    Returns:
        Process exit code.
    """
    try:
        with out.use_theme(custom_theme):
            try:
                await session.connect()
            except ToolServerConnectionError as exc:
                out.print(escape(str(exc)), style="error")
                return 1
            names = ", ".join(tool.name for tool in session.tools)
            out.print(f"Connected to server with tools: {names}", style="info")
            await chat_loop(session, out, ask)
        return 0
    finally:
        await session.cleanup()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bedrock-dynamo-chat",
        description="Chat with a Bedrock model that can call MCP tools.",
    )
    parser.add_argument(
        "server_script",
        help="Path to the MCP tool server script (.py or .js).",
    )
    parser.add_argument(
        "inference_profile_id",
        nargs="?",
        default=None,
        help="Bedrock inference profile id or ARN (overrides BEDROCK_MODEL_ID).",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, load configuration and run the interactive session.

    Returns:
        0 on a graceful quit or ``--help``, 1 on a usage or fatal startup error.
    """
    try:
        args = build_parser().parse_args(argv)
    except SystemExit as exc:
        # argparse has already printed usage; it exits 2 on a bad command line.
        return 0 if exc.code in (0, None) else 1
    load_dotenv()

    overrides: dict[str, str] = {}
    if args.inference_profile_id:
        overrides["bedrock_inference_profile_id"] = args.inference_profile_id
    try:
        settings = load_settings(**overrides)
    except ConfigurationError as exc:
        console.print(f"❌ {escape(str(exc))}", style="error")
        return 1

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if settings.bedrock_inference_profile_id:
        console.print(
            f"Using inference profile ID: {settings.bedrock_inference_profile_id}",
            style="info",
        )
    else:
        console.print(
            f"No inference profile ID provided. Using model ID {settings.bedrock_model_id}.",
            style="info",
        )

    try:
        tools_client = ToolServerClient.for_script(args.server_script)
    except ToolServerConnectionError as exc:
        console.print(escape(str(exc)), style="error")
        return 1
    session = ChatSession(settings, BedrockModel(settings), tools_client, console=console)
    return asyncio.run(run_session(session, console))
