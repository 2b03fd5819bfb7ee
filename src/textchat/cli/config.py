"""CLI: textchat config show|set|clear, textchat credentials"""

from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from textchat.credentials import CredentialsAPI
from textchat.errors import TextChatError
from textchat.transport.http import DEFAULT_TOKEN_SERVER, HttpClient

console = Console()


def _load_config() -> dict:
    from textchat.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from textchat.cli.main import _save_config
    _save_config(cfg)


def _run(coro):
    from textchat.cli.main import _run
    return _run(coro)


def _mask(value: str) -> str:
    return value[:4] + "…" if len(value) > 8 else "****"


@click.group()
def config():
    """Saved configuration."""


@config.command("show")
def config_show():
    """Show the saved configuration."""
    cfg = _load_config()
    if not cfg:
        console.print("[yellow]Nothing configured. Run `textchat config set`.[/yellow]")
        return
    table = Table(title="textchat config")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key in ("alias", "url", "token_server", "divider_seconds"):
        if key in cfg:
            table.add_row(key, str(cfg[key]))
    creds = cfg.get("credentials") or {}
    for key in ("api_key", "session_id"):
        if key in creds:
            table.add_row(key, creds[key])
    if creds.get("token"):
        table.add_row("token", _mask(creds["token"]))
    console.print(table)


@config.command("set")
@click.option("--alias", default=None, help="Display name sent with your messages")
@click.option("--url", default=None, help="Signaling server URL")
@click.option("--token-server", default=None, help="Credential server URL")
@click.option("--divider-seconds", default=None, type=float, help="Gap that starts a new divider")
@click.option("--api-key", default=None)
@click.option("--session-id", default=None)
@click.option("--token", default=None)
def config_set(alias: Optional[str], url: Optional[str], token_server: Optional[str],
               divider_seconds: Optional[float], api_key: Optional[str],
               session_id: Optional[str], token: Optional[str]):
    """Update saved settings."""
    cfg = _load_config()
    for key, value in (("alias", alias), ("url", url), ("token_server", token_server),
                       ("divider_seconds", divider_seconds)):
        if value is not None:
            cfg[key] = value
    creds = dict(cfg.get("credentials") or {})
    for key, value in (("api_key", api_key), ("session_id", session_id), ("token", token)):
        if value is not None:
            creds[key] = value
    if creds:
        missing = [k for k in ("api_key", "session_id", "token") if not creds.get(k)]
        if missing:
            raise click.UsageError(f"Credentials incomplete, missing: {', '.join(missing)}")
        cfg["credentials"] = creds
    _save_config(cfg)
    console.print("[green]Saved.[/green]")


@config.command("clear")
def config_clear():
    """Clear saved settings and credentials."""
    _save_config({})
    console.print("[green]Cleared.[/green]")


@click.command("credentials")
@click.argument("room")
@click.option("--token-server", default=None, help="Credential server URL")
def credentials_cmd(room: str, token_server: Optional[str]):
    """Fetch credentials for ROOM and save them."""

    async def _fetch():
        cfg = _load_config()
        url = token_server or cfg.get("token_server", DEFAULT_TOKEN_SERVER)
        http = HttpClient(base_url=url)
        try:
            with console.status("Fetching credentials..."):
                creds = await CredentialsAPI(http).fetch(room)
        finally:
            await http.close()
        _save_config({**cfg, "token_server": url, "credentials": creds.model_dump()})
        console.print(f"[green]Credentials saved for session {creds.session_id}[/green]")

    try:
        _run(_fetch())
    except TextChatError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
