"""Command-line interface for creatorgate."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from creatorgate import CreatorGateway, GatewayConfig, Platform, save_json, __version__
from creatorgate.config import LogFormat
from creatorgate.exceptions import CreatorGateError, QuotaExceededError

app = typer.Typer(
    name="creatorgate",
    help="Creator search and profile report gateway",
    add_completion=False,
)
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"creatorgate version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """creatorgate - creator profile intelligence gateway."""
    pass


def _config(quiet: bool) -> GatewayConfig:
    return GatewayConfig(log_format=LogFormat.JSON if quiet else LogFormat.CONSOLE)


def _run(coro):
    """Run a gateway coroutine, turning gateway errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except QuotaExceededError as e:
        console.print(f"[red]Limit reached:[/red] {e.used}/{e.limit} used for {e.feature_key}")
        raise typer.Exit(2)
    except CreatorGateError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)


@app.command()
def search(
    query: str = typer.Argument(..., help="Name, handle or profile URL"),
    platform: Optional[list[Platform]] = typer.Option(
        None, "--platform", "-p", help="Platform to search (repeatable)"
    ),
    exact: bool = typer.Option(False, "--exact", "-e", help="Only exact handle matches"),
    limit: int = typer.Option(10, "--limit", "-n", help="Max results"),
    account: str = typer.Option("cli", "--account", "-a", help="Account charged for quota"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="JSON logs only"),
):
    """Search creators across platforms."""

    async def run():
        async with CreatorGateway(_config(quiet)) as gateway:
            return await gateway.search_creators(
                account, query, platforms=platform or None, exact=exact, limit=limit
            )

    result = _run(run())

    table = Table(title=f"Results for {query!r}")
    table.add_column("Score", justify="right")
    table.add_column("Platform")
    table.add_column("Username")
    table.add_column("Name")
    table.add_column("Followers", justify="right")
    table.add_column("ER", justify="right")
    for item in result.items:
        table.add_row(
            str(item.score),
            item.provider.value,
            ("✓ " if item.is_verified else "") + (item.username or "-"),
            item.display_name or "-",
            f"{item.followers:,}",
            f"{item.engagement_rate:.2%}",
        )
    console.print(table)

    for name, message in result.errors.items():
        console.print(f"[yellow]![/yellow] {name}: {message}")


@app.command()
def users(
    platform: Platform = typer.Argument(..., help="Platform to search"),
    query: str = typer.Argument(..., help="Handle or name fragment"),
    limit: int = typer.Option(10, "--limit", "-n"),
    account: str = typer.Option("cli", "--account", "-a"),
):
    """Quick handle lookup on one platform."""

    async def run():
        async with CreatorGateway(_config(False)) as gateway:
            return await gateway.lookup_users(account, platform, query, limit=limit)

    for item in _run(run()):
        console.print(f"@{item.username or '-'}  {item.display_name}  [blue]{item.followers:,}[/blue]")


@app.command()
def report(
    platform: Platform = typer.Argument(..., help="Platform of the profile"),
    user_id: str = typer.Argument(..., help="Provider user id or handle"),
    force: bool = typer.Option(False, "--force", "-f", help="Force refresh, skip cache"),
    link: Optional[str] = typer.Option(None, "--link", "-l", help="Internal entity to link"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save report JSON here"),
    account: str = typer.Option("cli", "--account", "-a"),
):
    """Fetch a full profile report."""

    async def run():
        async with CreatorGateway(_config(False)) as gateway:
            return await gateway.report(
                account, platform, user_id, force_refresh=force, linked_entity_id=link
            )

    result = _run(run())
    _print_profile_table(result)

    if output:
        save_json(result, output)
        console.print(f"[dim]Saved to {output}[/dim]")


def _print_profile_table(result):
    """Print report profile as table."""
    p = result.profile
    cached_tag = " (cached)" if result.cached else ""

    table = Table(title=f"{p.provider.value} @{p.username or p.user_id}{cached_tag}", show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("User ID", p.user_id or "-")
    table.add_row("Name", p.display_name or "-")
    table.add_row("Followers", f"{p.followers:,}" if p.followers is not None else "-")
    table.add_row("Engagement rate", f"{p.engagement_rate:.2%}" if p.engagement_rate is not None else "-")
    table.add_row("Avg views", f"{p.average_views:,.0f}" if p.average_views is not None else "-")
    table.add_row("Verified", "✓" if p.is_verified else "✗")
    table.add_row("Country", p.country or "-")
    table.add_row("Linked entity", p.linked_entity_id or "-")
    table.add_row("Cached", "yes" if result.persisted else "no")

    console.print(table)


if __name__ == "__main__":
    app()
