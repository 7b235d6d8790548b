"""Main CLI entry point for Playlist Rescue."""

import asyncio
import logging
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

from playlist_rescue import __version__
from playlist_rescue.core.exceptions import PlaylistRescueError
from playlist_rescue.core.models import CollectionMode
from playlist_rescue.utils.identifiers import parse_playlist_identifier

if TYPE_CHECKING:
    from backend.services.collection_service import CollectionService
    from backend.services.rescue_service import RescueService

console = Console()

MODE_CHOICE = click.Choice([m.value for m in CollectionMode], case_sensitive=False)

# Lazy-loaded services; the backend stack is only imported when a command needs it
_rescue_service = None
_collection_service = None


def get_rescue_service() -> "RescueService":
    """Get or create the rescue service."""
    global _rescue_service
    if _rescue_service is None:
        from backend.config import get_backend_settings
        from backend.services.firestore_service import get_firestore_service
        from backend.services.rescue_service import build_rescue_service

        settings = get_backend_settings()
        _rescue_service = build_rescue_service(settings, get_firestore_service(settings))
    return _rescue_service


def get_collection_service() -> "CollectionService":
    """Get or create the collection service."""
    global _collection_service
    if _collection_service is None:
        from backend.config import get_backend_settings
        from backend.services.collection_service import build_collection_service
        from backend.services.firestore_service import get_firestore_service

        settings = get_backend_settings()
        _collection_service = build_collection_service(settings, get_firestore_service(settings))
    return _collection_service


@click.group()
@click.version_option(version=__version__, prog_name="playlist-rescue")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Playlist Rescue - Keep every track your followed playlists ever had."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING)


@cli.command()
@click.argument("mode", type=MODE_CHOICE)
def rescue(mode: str) -> None:
    """Run one rescue pass over every collection of a cadence."""
    collection_mode = CollectionMode(mode.upper())
    with console.status(f"Rescuing {collection_mode.value.lower()} collections..."):
        svc = get_rescue_service()
        result = asyncio.run(svc.rescue_playlists(collection_mode))

    if not result.outcomes:
        console.print(f"[yellow]No {collection_mode.value} collections to rescue[/yellow]")
        return

    table = Table(title=f"Rescue Run: {collection_mode.value}")
    table.add_column("Collection", style="dim")
    table.add_column("Owner", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Added", justify="right", style="magenta")
    table.add_column("Error", style="red")

    for outcome in result.outcomes:
        table.add_row(
            outcome.collection_id,
            outcome.owner_id,
            outcome.status.value,
            str(outcome.tracks_added),
            outcome.error or "",
        )

    console.print(table)
    console.print(
        f"[dim]{result.collections_processed} collections, "
        f"{result.tracks_added} tracks added, {result.failures} failures[/dim]"
    )


@cli.command()
@click.argument("identifier")
def parse(identifier: str) -> None:
    """Print the playlist ID in a playlist URL, URI or ID."""
    try:
        console.print(parse_playlist_identifier(identifier))
    except PlaylistRescueError as e:
        raise click.ClickException(str(e)) from e


@cli.group()
def collections() -> None:
    """Collection management commands."""
    pass


@collections.command(name="list")
@click.argument("owner_id")
def list_collections(owner_id: str) -> None:
    """List an owner's collections."""
    with console.status("Fetching collections..."):
        svc = get_collection_service()
        results = asyncio.run(svc.list_collections(owner_id))

    if not results:
        console.print(f"[yellow]No collections for '{owner_id}'[/yellow]")
        return

    table = Table(title=f"Collections of {owner_id}")
    table.add_column("ID", style="dim")
    table.add_column("Source", style="cyan")
    table.add_column("Destination", style="green")
    table.add_column("Mode", style="magenta")
    table.add_column("Collecting", justify="center")

    for collection in results:
        table.add_row(
            collection.id,
            collection.source_playlist_id,
            collection.destination_playlist_id or "-",
            collection.mode.value,
            "yes" if collection.collecting else "no",
        )

    console.print(table)


@collections.command()
@click.argument("owner_id")
@click.argument("identifier")
@click.option("--mode", "-m", type=MODE_CHOICE, default="WEEKLY", help="Rescue cadence")
def add(owner_id: str, identifier: str, mode: str) -> None:
    """Start collecting a playlist."""
    try:
        with console.status("Adding collection..."):
            svc = get_collection_service()
            collection = asyncio.run(svc.add_collection(owner_id, identifier, CollectionMode(mode.upper())))
    except PlaylistRescueError as e:
        raise click.ClickException(str(e)) from e

    console.print(
        f"[green]Collecting {collection.source_playlist_id} ({collection.mode.value})[/green] "
        f"[dim]id={collection.id}[/dim]"
    )


@collections.command()
@click.argument("owner_id")
@click.argument("collection_id")
@click.option("--unfollow", is_flag=True, help="Also unfollow the rescued playlist on Spotify")
def remove(owner_id: str, collection_id: str, unfollow: bool) -> None:
    """Stop collecting a playlist."""
    try:
        with console.status("Removing collection..."):
            svc = get_collection_service()
            asyncio.run(svc.remove_collection(owner_id, collection_id, unfollow=unfollow))
    except PlaylistRescueError as e:
        raise click.ClickException(str(e)) from e

    console.print(f"[green]Removed collection {collection_id}[/green]")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
