"""
Text chat CLI — `textchat` command.

Commands:
  textchat config show|set|clear   Saved alias, endpoints and credentials
  textchat credentials <room>      Fetch credentials from the token server
  textchat chat                    Interactive console chat
"""

import asyncio
import json
from datetime import timedelta
from pathlib import Path
from typing import Optional

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install textchat-kit[cli]")

from textchat.config import DEFAULT_DIVIDER_THRESHOLD, Credentials, TextChatConfig
from textchat.session import TextChatSession
from textchat.transport.socketio import SocketIOTransport

console = Console()
CONFIG_FILE = Path.home() / ".textchat" / "config.json"
DEFAULT_SIGNALING_URL = "http://localhost:3000"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _session_config(cfg: dict, alias: Optional[str] = None) -> TextChatConfig:
    creds = cfg.get("credentials")
    divider = cfg.get("divider_seconds")
    return TextChatConfig(
        alias=alias if alias is not None else cfg.get("alias", ""),
        credentials=Credentials.model_validate(creds) if creds else None,
        divider_threshold=timedelta(seconds=divider) if divider else DEFAULT_DIVIDER_THRESHOLD,
    )


def _get_session(alias: Optional[str] = None) -> TextChatSession:
    cfg = _load_config()
    if not cfg.get("credentials"):
        console.print("[red]No credentials. Run `textchat credentials <room>` or `textchat config set` first.[/red]")
        raise SystemExit(1)
    transport = SocketIOTransport(cfg.get("url", DEFAULT_SIGNALING_URL))
    return TextChatSession(transport, _session_config(cfg, alias))


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
def main():
    """Text chat CLI — chat alongside a real-time session."""


# Register subcommands from separate modules
from textchat.cli.config import config, credentials_cmd
from textchat.cli.chat import chat_cmd

main.add_command(config)
main.add_command(credentials_cmd)
main.add_command(chat_cmd)


if __name__ == "__main__":
    main()
