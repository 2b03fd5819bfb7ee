"""CLI: textchat chat"""

import asyncio
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from textchat.models.events import NotificationType
from textchat.models.message import Direction, SessionPhase
from textchat.notifications import ChatNotification
from textchat.session import TextChatSession

console = Console()


def _get_session(alias: Optional[str] = None) -> TextChatSession:
    from textchat.cli.main import _get_session
    return _get_session(alias)


def _run(coro):
    from textchat.cli.main import _run
    return _run(coro)


def render(session: TextChatSession, notification: ChatNotification) -> None:
    """Print one notification. Grouped messages skip the sender/time header."""
    kind = notification.type
    if kind in (NotificationType.MESSAGE_SENT, NotificationType.MESSAGE_RECEIVED):
        message = notification.message
        if message is None:
            return
        if session.divider_before(session.count - 1):
            console.rule(style="dim")
        if not message.is_grouped:
            style = "green" if message.direction == Direction.SENT else "cyan"
            sender = escape(message.sender_alias or " ")
            when = message.timestamp.astimezone().strftime("%I:%M %p")
            console.print(f"[{style}]{sender}[/{style}] [dim]{when}[/dim]")
        console.print(f"  {escape(message.text)}")
    elif kind == NotificationType.CONNECTION_CREATED and notification.connection:
        console.print(f"[dim]{escape(notification.connection.display_alias())} joined[/dim]")
    elif kind == NotificationType.CONNECTION_DESTROYED and notification.connection:
        console.print(f"[dim]{escape(notification.connection.display_alias())} left[/dim]")
    elif kind in (NotificationType.SEND_FAILED, NotificationType.MESSAGE_DELIVERY_FAILED):
        console.print(f"[red]Not sent: {escape(notification.reason or '')}[/red]")
    elif kind == NotificationType.DISCONNECTED:
        suffix = f" ({escape(notification.reason)})" if notification.reason else ""
        console.print(f"[yellow]Disconnected{suffix}[/yellow]")


@click.command("chat")
@click.option("--alias", default=None, help="Override the saved alias")
def chat_cmd(alias: Optional[str]):
    """Interactive text chat."""

    session = _get_session(alias)

    async def _chat():
        outcome: list[ChatNotification] = []
        done = asyncio.Event()

        def on_connect(notification: ChatNotification) -> None:
            outcome.append(notification)
            done.set()

        session.add_listener(lambda n: render(session, n))
        with console.status("Connecting..."):
            session.connect(on_connect)
            await done.wait()
        if outcome[0].type != NotificationType.CONNECTED:
            console.print(f"[red]Could not connect: {escape(outcome[0].reason or '')}[/red]")
            return

        console.print("[cyan]Type your message (/quit to exit)[/cyan]\n")
        try:
            while session.phase == SessionPhase.CONNECTED:
                text = await asyncio.to_thread(click.prompt, "", prompt_suffix="> ", default="", show_default=False)
                if text.lower() in ("/quit", "/exit"):
                    break
                if text:
                    session.send_message(text)
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            await session.aclose()

    _run(_chat())
