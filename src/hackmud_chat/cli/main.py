"""
hackmud Chat CLI - Main entry point

This module provides the command-line interface for the hackmud chat client.
"""

import asyncio
import json
import logging
import sys
from datetime import datetime
from typing import Any, Awaitable, Callable

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..client.client import HackmudChatClient
from ..config import ChatSettings
from ..core.events import EventTypes, Message, parse_chats
from ..core.session import ChatSession, now_ms
from ..core.transport import ApiError, ChatTransport, HackmudChatError

console = Console()


def format_message(message: Message) -> str:
    """Render a message as a single console line"""
    timestamp = datetime.fromtimestamp(message.timestamp / 1000)
    target = message.target if message.is_tell else f"#{message.target}"
    return (f"[dim]{timestamp.strftime('%H:%M:%S')}[/dim] "
            f"[bold]{escape(str(message.from_user))}[/bold] -> {escape(target)}: {escape(message.body)}")


def run_session(ctx, token: str, operation: Callable[[ChatSession], Awaitable[Any]]) -> Any:
    """Run one API operation with a fresh session, exiting on failure"""
    async def runner():
        transport = ChatTransport(ctx.obj['settings'].base_url, ctx.obj['settings'].timeout)
        try:
            return await operation(ChatSession(transport, token))
        finally:
            await transport.close()

    try:
        return asyncio.run(runner())
    except (HackmudChatError, KeyError, TypeError) as e:
        fail(e)


def fail(error: Exception) -> None:
    """Print a failed request and exit"""
    if isinstance(error, ApiError):
        body = error.body if isinstance(error.body, str) else json.dumps(error.body)
        console.print(f"[red]❌ API error {error.status}: {escape(body)}[/red]")
    elif isinstance(error, HackmudChatError):
        console.print(f"[red]❌ Request failed: {escape(str(error))}[/red]")
    else:
        console.print(f"[red]❌ Unexpected API response: {escape(repr(error))}[/red]")
    sys.exit(1)


@click.group()
@click.option('--base-url', '-b', default=None, help='Chat API base URL')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.pass_context
def cli(ctx, base_url: str, verbose: bool):
    """hackmud Chat - command-line client for the hackmud chat API"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = ChatSettings()
    if base_url:
        settings = settings.model_copy(update={'base_url': base_url.rstrip('/')})

    ctx.ensure_object(dict)
    ctx.obj['settings'] = settings

    if verbose:
        console.print(f"[dim]Using API: {settings.base_url}[/dim]")


@cli.command()
@click.argument('chat_pass')
@click.pass_context
def token(ctx, chat_pass: str):
    """Exchange a chat pass for a chat token"""
    console.print(f"Chat pass: {chat_pass}")
    chat_token = run_session(ctx, None, lambda session: session.get_token(chat_pass))
    console.print(f"Chat token: [bold green]{chat_token}[/bold green]")


@cli.command()
@click.argument('chat_token')
@click.pass_context
def users(ctx, chat_token: str):
    """Show the account's users and their channels"""
    account = run_session(ctx, chat_token, lambda session: session.sync_account_data())

    table = Table(title="Account users")
    table.add_column("User", style="bold")
    table.add_column("Channels")
    for user, channels in account.items():
        table.add_row(user, ", ".join(channels) or "[dim]none[/dim]")
    console.print(table)


@cli.command()
@click.argument('chat_token')
@click.argument('from_user')
@click.argument('channel')
@click.argument('message')
@click.pass_context
def send(ctx, chat_token: str, from_user: str, channel: str, message: str):
    """Send a message to a channel"""
    run_session(ctx, chat_token, lambda session: session.send(from_user, channel, message))
    console.print(f"[dim]✓ Sent to #{channel}[/dim]")


@cli.command()
@click.argument('chat_token')
@click.argument('from_user')
@click.argument('to_user')
@click.argument('message')
@click.pass_context
def tell(ctx, chat_token: str, from_user: str, to_user: str, message: str):
    """Send a tell to a user"""
    run_session(ctx, chat_token, lambda session: session.tell(from_user, to_user, message))
    console.print(f"[dim]✓ Told {to_user}[/dim]")


@cli.command()
@click.argument('chat_token')
@click.argument('username')
@click.argument('channel')
@click.option('--minutes', '-m', default=60, help='How far back to look')
@click.pass_context
def history(ctx, chat_token: str, username: str, channel: str, minutes: int):
    """Show chat history for a channel"""
    console.print(Panel.fit(f"📜 Chat History: #{channel}", style="bold cyan"))

    before = now_ms()
    after = before - minutes * 60 * 1000
    result = run_session(ctx, chat_token,
                         lambda session: session.chat_history(username, channel, before, after))

    chats = result.get('chats') if isinstance(result, dict) else None
    if not isinstance(chats, list):
        console.print_json(data=result)
        return
    if not chats:
        console.print("No messages found. History only covers windows in which "
                      f"{username} joined or left #{channel}.")
        return
    for message in parse_chats({username: chats}):
        console.print(format_message(message))


@cli.command()
@click.argument('chat_token')
@click.option('--interval', '-i', default=None, type=float, help='Seconds between polls')
@click.option('--seconds', '-s', default=None, type=float, help='Stop after this many seconds')
@click.pass_context
def watch(ctx, chat_token: str, interval: float, seconds: float):
    """Stream new messages until interrupted"""
    settings = ctx.obj['settings']
    console.print(Panel.fit("💬 Watching chat", style="bold magenta"))

    def on_poll(messages):
        for message in messages:
            console.print(format_message(message))

    async def run_watch():
        client = HackmudChatClient(chat_token, poll_interval=interval, settings=settings)
        client.on(EventTypes.ACCOUNT_SYNC,
                  lambda users: console.print(f"[dim]Tracking {', '.join(users) or 'no users'}[/dim]"))
        client.on(EventTypes.POLL, on_poll)
        client.on(EventTypes.ERROR, lambda error: console.print(f"[red]✗ {escape(str(error))}[/red]"))
        async with client:
            if seconds is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(seconds)

    try:
        asyncio.run(run_watch())
    except KeyboardInterrupt:
        console.print("\n👋 Goodbye!")
    except HackmudChatError as e:
        fail(e)


@cli.command()
def version():
    """Show version information"""
    console.print(Panel.fit(f"hackmud Chat Client v{__version__}", style="bold blue"))
    console.print("Licensed under AGPLv3")


def main():
    """Main entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n👋 Goodbye!")
        sys.exit(0)


if __name__ == '__main__':
    main()
