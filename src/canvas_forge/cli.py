"""
Canvas Forge CLI - Command-line interface.

Save, fork, publish and inspect games against the local metadata database
and the configured content store, or serve the REST API.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from canvas_forge.config import load_settings
from canvas_forge.core.exceptions import CanvasForgeError, format_exception
from canvas_forge.core.models import Channel, Game
from canvas_forge.repository import DEFAULT_PAGE_LIMIT
from canvas_forge.service import GameService, build_service

app = typer.Typer(
    name="canvas-forge",
    help="Canvas Forge - versioning, forking and publication of HTML games",
    no_args_is_help=True,
)
console = Console()


@contextmanager
def _service() -> Iterator[GameService]:
    """Build a service from the environment; report domain errors and exit 1."""
    service = None
    try:
        service = build_service(load_settings())
        yield service
    except CanvasForgeError as e:
        console.print(f"[red]{format_exception(e)}[/red]")
        raise typer.Exit(1)
    finally:
        if service is not None:
            service.close()


def _print_game(game: Game) -> None:
    published = [
        channel.value for channel in Channel if game.is_published(channel)
    ]
    console.print(
        Panel.fit(
            f"[bold cyan]{game.title}[/bold cyan]\n"
            f"ID: {game.game_id}\n"
            f"Owner: {game.owner_id}\n"
            f"Version: {game.current_version}\n"
            f"Published: {', '.join(published) or 'no'}\n"
            f"Forks: {game.fork_count}"
            + (f"\nForked from: {game.original_game_id}" if game.original_game_id else ""),
        )
    )


@app.command()
def save(
    html_file: Path = typer.Argument(..., help="HTML file to store"),
    wallet: str = typer.Option(..., "--wallet", "-w", help="Owner wallet address"),
    title: str = typer.Option(..., "--title", "-t", help="Version title"),
    game_id: Optional[str] = typer.Option(None, "--game-id", "-g", help="Existing game to update"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Version description"),
    tags: Optional[list[str]] = typer.Option(None, "--tag", help="Tag (repeatable)"),
):
    """Create a game, or add a version to one with --game-id."""
    if not html_file.is_file():
        console.print(f"[red]File does not exist: {html_file}[/red]")
        raise typer.Exit(1)

    content = html_file.read_bytes()
    with _service() as service:
        game = service.create_or_update_game(
            wallet,
            content,
            title,
            game_id=game_id,
            description=description,
            tags=tags,
        )
    console.print(f"[green]Saved version {game.current_version} of {game.game_id}[/green]")
    console.print(f"Content: {game.latest_version.content_ref.url}")


@app.command()
def fork(
    game_id: str = typer.Argument(..., help="Game to fork"),
    wallet: str = typer.Option(..., "--wallet", "-w", help="Wallet address of the new owner"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Title of the fork"),
):
    """Fork the latest version of a game."""
    with _service() as service:
        game = service.fork_game(game_id, wallet, title)
    console.print(f"[green]Forked {game_id} into {game.game_id}[/green]")
    _print_game(game)


def _set_publication(game_id: str, channel: str, wallet: str, published: bool) -> None:
    with _service() as service:
        game = service.set_publication(game_id, channel, wallet, published)
    state = "published on" if game.is_published(Channel.parse(channel)) else "not published on"
    console.print(f"[green]{game.title} is {state} {channel}[/green]")


@app.command()
def publish(
    game_id: str = typer.Argument(..., help="Game to publish"),
    channel: str = typer.Option(Channel.MARKETPLACE.value, "--channel", "-c", help="marketplace or community"),
    wallet: str = typer.Option(..., "--wallet", "-w", help="Owner wallet address"),
):
    """Publish a game on a channel."""
    _set_publication(game_id, channel, wallet, True)


@app.command()
def unpublish(
    game_id: str = typer.Argument(..., help="Game to unpublish"),
    channel: str = typer.Option(Channel.MARKETPLACE.value, "--channel", "-c", help="marketplace or community"),
    wallet: str = typer.Option(..., "--wallet", "-w", help="Owner wallet address"),
):
    """Remove a game from a channel."""
    _set_publication(game_id, channel, wallet, False)


@app.command("list")
def list_cmd(
    wallet: Optional[str] = typer.Option(None, "--wallet", "-w", help="List games owned by a wallet"),
    channel: Optional[str] = typer.Option(None, "--channel", "-c", help="List games on a channel"),
    page: int = typer.Option(1, "--page", "-p", help="1-based page number"),
    limit: int = typer.Option(DEFAULT_PAGE_LIMIT, "--limit", "-n", help="Page size"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Search channel listings"),
):
    """List games by owner or by channel."""
    with _service() as service:
        games = service.list_games(
            owner_id=wallet,
            channel=channel,
            page=page,
            limit=limit,
            search=search,
        )

    label = f"wallet {wallet}" if wallet else f"channel {channel}"
    table = Table(title=f"Games for {label} (page {page}, {len(games)} shown)")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Version", justify="right")
    table.add_column("Forks", justify="right")
    table.add_column("Updated", style="dim")

    for game in games:
        table.add_row(
            game.game_id,
            game.title,
            str(game.current_version),
            str(game.fork_count),
            game.updated_at[:19],
        )

    console.print(table)


@app.command()
def show(
    game_id: str = typer.Argument(..., help="Game to show"),
):
    """Show a game and its version history."""
    with _service() as service:
        game = service.get_game(game_id)

    _print_game(game)
    table = Table(title="Versions")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Content", style="magenta")
    table.add_column("Size", justify="right")
    table.add_column("Created", style="dim")
    for version in game.versions:
        table.add_row(
            str(version.number),
            version.title,
            version.content_ref.id,
            str(version.content_ref.size_bytes),
            version.created_at[:19],
        )
    console.print(table)


@app.command()
def delete(
    game_id: str = typer.Argument(..., help="Game to delete"),
    wallet: str = typer.Option(..., "--wallet", "-w", help="Owner wallet address"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a game and its version history."""
    if not yes:
        typer.confirm(f"Delete game {game_id}?", abort=True)
    with _service() as service:
        service.delete_game(game_id, wallet)
    console.print(f"[green]Deleted {game_id}[/green]")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the REST API with uvicorn."""
    import uvicorn

    console.print(f"[bold blue]Canvas Forge API[/bold blue] on http://{host}:{port} (docs at /docs)")
    uvicorn.run(
        "canvas_forge.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def version():
    """Show Canvas Forge version."""
    from canvas_forge import __version__

    console.print(f"Canvas Forge v{__version__}")


if __name__ == "__main__":
    app()
