"""CLI: janus attach, janus message"""

import json

import click
from rich.console import Console

from janus_session.errors import JanusError
from janus_session.plugins import expand_namespace

console = Console()


def _get_session():
    from janus_session.cli.main import _get_session
    return _get_session()


def _resolve_url(url):
    from janus_session.cli.main import _resolve_url
    return _resolve_url(url)


def _run(coro):
    from janus_session.cli.main import _run
    return _run(coro)


@click.command("attach")
@click.argument("plugin")
@click.option("--url", default=None, help="Gateway base URL.")
def attach_cmd(plugin, url):
    """Attach to PLUGIN and print the handle id."""

    async def _attach():
        async with _get_session() as session:
            await session.connect(_resolve_url(url))
            with console.status(f"Attaching to {plugin}..."):
                handle_id = await session.activate(plugin)
            console.print(f"[green]{plugin}: handle {handle_id} (session {session.id})[/green]")

    _run(_attach())


@click.command("message")
@click.argument("plugin")
@click.argument("body")
@click.option("--url", default=None, help="Gateway base URL.")
@click.option("--timeout", default=10.0, type=float, help="Seconds to wait for the plugin event.")
@click.option("--json-output", "--json", is_flag=True)
def message_cmd(plugin, body, url, timeout, json_output):
    """Send BODY (a JSON object) to PLUGIN and print the resulting event."""
    try:
        message = json.loads(body)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="BODY")

    async def _message():
        async with _get_session() as session:
            await session.connect(_resolve_url(url))
            await session.activate(plugin)
            with console.status("Waiting for event..."):
                try:
                    event = await session.plugin(expand_namespace(plugin)[1]).send(message, timeout=timeout)
                except JanusError as e:
                    console.print(f"[red]{e}[/red]")
                    raise SystemExit(1)
            if json_output:
                click.echo(json.dumps(event.envelope, indent=2))
                return
            console.print(event.data)

    _run(_message())
