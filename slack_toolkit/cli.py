#!/usr/bin/env python3
"""
Command line interface for the Slack toolkit

Lists tools, runs a single tool call, checks Slack credentials and serves
the HTTP API.
"""
import asyncio
import json
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config.settings import settings, configure_logging
from .slack.auth import SlackAuth
from .slack.client import SlackClient
from .slack.errors import SlackAuthError
from .tools.registry import build_registry

console = Console()


@click.group()
@click.option('--log-level', default=None, help='Log level (default: from config)')
def cli(log_level):
    """Slack tool execution framework"""
    if log_level:
        settings.logging.level = log_level.upper()
    configure_logging(settings.logging)


@cli.command()
@click.option('--category', default=None, help='Only show tools in this category')
def tools(category):
    """List the registered tools"""
    async def run():
        registry = build_registry(settings)
        try:
            return [
                registry.get_tool(name).definition
                for name in registry.get_tool_names()
            ]
        finally:
            await registry.close()

    definitions = asyncio.run(run())
    if category:
        definitions = [d for d in definitions if d.category == category]

    table = Table(title="Slack Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Rate limit")
    table.add_column("Description")
    for definition in definitions:
        limit = definition.rate_limit
        rate = f"{limit.max_calls}/{limit.window_ms // 1000}s" if limit and limit.is_enforceable else "-"
        table.add_row(definition.name, definition.category, rate, definition.description)

    console.print(table)
    console.print(f"{len(definitions)} tools", style="dim")


@cli.command()
@click.argument('name')
@click.option('--args', 'raw_args', default='{}', help='Tool arguments as a JSON object')
def call(name, raw_args):
    """Run a single tool call and print the response envelope"""
    try:
        args = json.loads(raw_args)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--args")

    async def run():
        registry = build_registry(settings)
        try:
            return await registry.execute_tool(name, args)
        finally:
            await registry.close()

    envelope = asyncio.run(run())
    click.echo(json.dumps(envelope, indent=2))
    if envelope.get("isError"):
        sys.exit(1)


@cli.command('check-auth')
def check_auth():
    """Validate the configured Slack credentials with auth.test"""
    auth = SlackAuth(settings.slack)
    try:
        tokens = auth.extract_tokens()
    except SlackAuthError as e:
        console.print(f"❌ {e.message}", style="red")
        sys.exit(1)

    if tokens is None:
        console.print(
            "❌ Slack credentials not configured. "
            "Set SLACK_XOXC_TOKEN, SLACK_XOXD_TOKEN and SLACK_TEAM_DOMAIN.",
            style="red",
        )
        sys.exit(1)

    async def run():
        async with SlackClient.from_settings(tokens, settings.slack) as client:
            return await auth.validate_tokens(client)

    result = asyncio.run(run())
    if not result.success:
        console.print(f"❌ {result.error}", style="red")
        sys.exit(1)

    console.print(Panel.fit(
        f"[bold green]Authenticated[/bold green]\n"
        f"User: {result.user} ({result.user_id})\n"
        f"Team: {result.team}",
        border_style="green"
    ))


@cli.command()
@click.option('--host', default=None, help='Bind host (default: from config)')
@click.option('--port', default=None, type=int, help='Bind port (default: from config)')
def serve(host, port):
    """Serve the HTTP API"""
    from .server import run_server

    if host:
        settings.server.host = host
    if port:
        settings.server.port = port

    console.print(Panel.fit(
        f"[bold blue]{settings.app_name}[/bold blue]\n"
        f"🌐 http://{settings.server.host}:{settings.server.port}",
        border_style="blue"
    ))
    run_server(settings)


def main():
    cli()


if __name__ == "__main__":
    main()
