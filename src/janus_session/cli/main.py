"""
Janus session CLI — `janus` command.

Commands:
  janus ping [URL]                  Create and destroy a session
  janus attach PLUGIN               Attach to a plugin, print its handle id
  janus message PLUGIN BODY_JSON    Send a plugin message, print its event
  janus config set-url URL          Remember the gateway URL
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Optional

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install janus-session[cli]")

from janus_session.client import AsyncJanusSession

console = Console()
CONFIG_FILE = Path.home() / ".janus" / "config.json"
DEFAULT_URL = "http://localhost:8088/janus"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _resolve_url(url: Optional[str]) -> str:
    return url or os.environ.get("JANUS_URL") or _load_config().get("base_url") or DEFAULT_URL


def _get_session() -> AsyncJanusSession:
    cfg = _load_config()
    return AsyncJanusSession(poll_interval=cfg.get("poll_interval", 0.5))


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
def main():
    """Janus gateway session CLI."""


@main.command("ping")
@click.argument("url", required=False)
def ping(url):
    """Create a session, print its id, destroy it."""

    async def _ping():
        async with _get_session() as session:
            with console.status("Connecting..."):
                await session.connect(_resolve_url(url))
            console.print(f"[green]Session created: {session.id}[/green]")
            await session.disconnect()
            console.print("[dim]Session destroyed.[/dim]")

    _run(_ping())


@main.group()
def config():
    """CLI configuration."""


@config.command("set-url")
@click.argument("url")
def config_set_url(url):
    """Remember the gateway base URL."""
    cfg = _load_config()
    cfg["base_url"] = url
    _save_config(cfg)
    console.print(f"[green]Gateway URL set to {url}[/green]")


# Register subcommands from separate modules
from janus_session.cli.plugins import attach_cmd, message_cmd

main.add_command(attach_cmd)
main.add_command(message_cmd)


if __name__ == "__main__":
    main()
