from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import Settings, load_settings
from .db.session import get_session, init_engine
from .domain import AnalysisReport
from .errors import AnalysisFailed, LetterboxdError
from .services import export as export_service
from .services import groups as group_service
from .services.analysis import AnalysisService, normalize_usernames

console = Console()

app = typer.Typer(
    help="Find the films your friends all want to watch on Letterboxd.",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)
group_app = typer.Typer(help="Manage saved groups of users.", no_args_is_help=True)
cache_app = typer.Typer(help="Cache maintenance.", no_args_is_help=True)

app.add_typer(group_app, name="group")
app.add_typer(cache_app, name="cache")


def get_state(ctx: typer.Context) -> Dict[str, Settings]:
    return ctx.ensure_object(dict)  # type: ignore[return-value]


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to TOML config file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    """Application entry point: load configuration."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    settings = load_settings(config_path=config)
    state = get_state(ctx)
    state["settings"] = settings
    init_engine(settings)


def _print_report(report: AnalysisReport, limit: int) -> None:
    result = report.result
    console.print(
        f"[green]{result.total_movies}[/green] common films across {result.total_users} users."
    )
    table = Table(title="Common watchlist films")
    table.add_column("#", style="cyan")
    table.add_column("Priority")
    table.add_column("Title")
    table.add_column("Watchlists")
    table.add_column("Watched by")
    movies = result.movies if limit <= 0 else result.movies[:limit]
    for rank, movie in enumerate(movies, start=1):
        table.add_row(
            str(rank),
            str(movie.priority),
            movie.title,
            f"{movie.in_watchlist_count}/{result.total_users}",
            ", ".join(movie.watched_by_users) or "-",
        )
    console.print(table)
    for warning in report.warnings:
        console.print(f"[yellow]Skipped[/yellow] {warning.username}: {warning.error}")


def _run_analysis(
    settings: Settings,
    usernames: List[str],
    *,
    force_refresh: bool,
    posters: bool,
    limit: int,
    output: Optional[Path],
) -> None:
    service = AnalysisService.from_settings(settings)
    try:
        report = service.analyze(
            usernames,
            force_refresh=force_refresh,
            include_posters=posters,
            poster_limit=limit if limit > 0 else None,
        )
    except AnalysisFailed as exc:
        console.print("[red]Failed to fetch data for all users[/red]")
        for failure in exc.failures:
            console.print(f"  {failure.username}: {failure.error}")
        raise typer.Exit(code=1)
    except ValueError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1)
    finally:
        service.close()
    _print_report(report, limit)
    if output:
        count = export_service.export_analysis_to_csv(report.result, output)
        console.print(f"[green]Exported[/green] {count} rows to {output}")


@app.command("validate")
def validate(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="Letterboxd username."),
) -> None:
    """Check that a Letterboxd profile exists."""
    settings = get_state(ctx)["settings"]
    service = AnalysisService.from_settings(settings)
    try:
        validation = service.validate_username(username)
    except LetterboxdError as exc:
        console.print(f"[red]Validation failed[/red]: {exc}")
        raise typer.Exit(code=1)
    finally:
        service.close()
    if not validation.exists:
        console.print(f"[yellow]{username}[/yellow] does not exist on Letterboxd.")
        raise typer.Exit(code=1)
    console.print(f"[green]{username}[/green] exists ({validation.display_name}).")


@app.command("analyze")
def analyze(
    ctx: typer.Context,
    usernames: List[str] = typer.Argument(..., help="Letterboxd usernames to compare."),
    force_refresh: bool = typer.Option(False, "--force-refresh", "-f", help="Ignore cached lists."),
    posters: bool = typer.Option(False, "--posters/--no-posters", help="Resolve poster URLs."),
    limit: int = typer.Option(25, "--limit", "-n", help="Rows to display (0 for all)."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the full result to CSV."),
) -> None:
    """Compute the films common to several users' watchlists."""
    settings = get_state(ctx)["settings"]
    _run_analysis(
        settings,
        usernames,
        force_refresh=force_refresh,
        posters=posters,
        limit=limit,
        output=output,
    )


@app.command("film")
def film(
    ctx: typer.Context,
    slug: str = typer.Argument(..., help="Film slug, e.g. 'parasite-2019'."),
) -> None:
    """Show poster and basic details for a film."""
    settings = get_state(ctx)["settings"]
    service = AnalysisService.from_settings(settings)
    try:
        details = service.fetch_film_details(slug)
    finally:
        service.close()
    console.print(f"[cyan]{slug}[/cyan]")
    console.print(f"  poster: {details.poster_url or '-'}")
    console.print(f"  year: {details.year or '-'}  director: {details.director or '-'}  rating: {details.rating or '-'}")


@group_app.command("create")
def group_create(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", "-n", help="Group name."),
    users: List[str] = typer.Option(..., "--user", "-u", help="Member username (repeatable)."),
) -> None:
    """Save a named set of users."""
    settings = get_state(ctx)["settings"]
    with get_session(settings) as session:
        group = group_service.create_group(session, name, users)
        group_id = group.id
    console.print(f"[green]Created group[/green] '{name}' (id={group_id}).")


@group_app.command("list")
def group_list(ctx: typer.Context) -> None:
    """List saved groups."""
    settings = get_state(ctx)["settings"]
    table = Table(title="Groups")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Users")
    with get_session(settings) as session:
        for group in group_service.list_groups(session):
            table.add_row(str(group.id), group.name, ", ".join(group.users or []))
    console.print(table)


@group_app.command("show")
def group_show(
    ctx: typer.Context,
    group_id: int = typer.Argument(..., help="Group identifier."),
) -> None:
    """Show a saved group's members."""
    settings = get_state(ctx)["settings"]
    with get_session(settings) as session:
        group = group_service.get_group(session, group_id)
        if not group:
            typer.echo(f"Group {group_id} not found.")
            raise typer.Exit(code=1)
        console.print(f"[cyan]{group.name}[/cyan] (id={group.id}, created {group.created_at:%Y-%m-%d})")
        for username in group.users or []:
            console.print(f"  {username}")


@group_app.command("rename")
def group_rename(
    ctx: typer.Context,
    group_id: int = typer.Argument(..., help="Group identifier."),
    name: str = typer.Option(..., "--name", "-n", help="New group name."),
) -> None:
    """Rename a saved group."""
    settings = get_state(ctx)["settings"]
    with get_session(settings) as session:
        group = group_service.rename_group(session, group_id, name)
        if not group:
            typer.echo(f"Group {group_id} not found.")
            raise typer.Exit(code=1)
    console.print(f"[green]Renamed[/green] group {group_id} to '{name}'.")


@group_app.command("delete")
def group_delete(
    ctx: typer.Context,
    group_id: int = typer.Argument(..., help="Group identifier."),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt and delete immediately.",
    ),
) -> None:
    """Permanently delete a saved group."""
    settings = get_state(ctx)["settings"]
    with get_session(settings) as session:
        group = group_service.get_group(session, group_id)
        if not group:
            typer.echo(f"Group {group_id} not found.")
            raise typer.Exit(code=1)
        name = group.name
    if not yes:
        confirm = typer.confirm(f"Delete group {group_id} ('{name}')?", default=False)
        if not confirm:
            typer.echo("Deletion cancelled.")
            raise typer.Exit()
    with get_session(settings) as session:
        deleted = group_service.delete_group(session, group_id)
    if not deleted:
        typer.echo(f"Group {group_id} not found.")
        raise typer.Exit(code=1)
    console.print(f"[green]Deleted[/green] group {group_id} ('{name}').")


@group_app.command("analyze")
def group_analyze(
    ctx: typer.Context,
    group_id: int = typer.Argument(..., help="Group identifier."),
    force_refresh: bool = typer.Option(False, "--force-refresh", "-f", help="Ignore cached lists."),
    posters: bool = typer.Option(False, "--posters/--no-posters", help="Resolve poster URLs."),
    limit: int = typer.Option(25, "--limit", "-n", help="Rows to display (0 for all)."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the full result to CSV."),
) -> None:
    """Run an analysis over a saved group's users."""
    settings = get_state(ctx)["settings"]
    with get_session(settings) as session:
        group = group_service.get_group(session, group_id)
        if not group:
            typer.echo(f"Group {group_id} not found.")
            raise typer.Exit(code=1)
        usernames = list(group.users or [])
    _run_analysis(
        settings,
        usernames,
        force_refresh=force_refresh,
        posters=posters,
        limit=limit,
        output=output,
    )


@cache_app.command("invalidate")
def cache_invalidate(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="Username whose cached lists should be dropped."),
) -> None:
    """Drop one user's cached lists."""
    settings = get_state(ctx)["settings"]
    names = normalize_usernames([username])
    if not names:
        typer.echo("A username is required.")
        raise typer.Exit(code=1)
    username = names[0]
    service = AnalysisService.from_settings(settings)
    try:
        removed = service.user_cache.invalidate(username)
    finally:
        service.close()
    if removed:
        console.print(f"[green]Invalidated[/green] cached lists for {username}.")
    else:
        console.print(f"[yellow]No cached lists[/yellow] for {username}.")


@cache_app.command("purge")
def cache_purge(ctx: typer.Context) -> None:
    """Delete cache entries older than their TTL."""
    settings = get_state(ctx)["settings"]
    service = AnalysisService.from_settings(settings)
    try:
        users = service.user_cache.purge_expired()
        posters = service.poster_cache.purge_expired()
    finally:
        service.close()
    console.print(f"[green]Purged[/green] {users} user entries and {posters} poster entries.")


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    posters: bool = typer.Option(False, "--posters/--no-posters", help="Also clear cached posters."),
) -> None:
    """Delete every cached user list (and optionally posters)."""
    settings = get_state(ctx)["settings"]
    service = AnalysisService.from_settings(settings)
    try:
        users = service.user_cache.clear()
        poster_count = service.poster_cache.clear() if posters else 0
    finally:
        service.close()
    console.print(f"[green]Cleared[/green] {users} user entries and {poster_count} poster entries.")


if __name__ == "__main__":  # pragma: no cover
    app()
