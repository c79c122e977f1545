"""CLI entry-point for the profile sync pipelines."""

from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any, Callable, NoReturn

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import (
    FootprintsConfig,
    HitokotoConfig,
    InstagramConfig,
    LastfmConfig,
    NeoDBConfig,
    VSCOConfig,
    WakaTimeConfig,
)
from .errors import SyncError

console = Console()
logger = logging.getLogger("profilesync.cli")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )
    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("github").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _print_stats(title: str, stats: dict) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Count", justify="right")
    for key, val in stats.items():
        table.add_row(key.capitalize(), str(val))
    console.print(table)


def _load(factory: Callable[[], Any], **overrides: Any) -> Any:
    """Build a config from the environment, apply CLI overrides, validate."""
    cfg = factory()
    changes = {k: v for k, v in overrides.items() if v is not None}
    if changes:
        cfg = dataclasses.replace(cfg, **changes)
    cfg.validate()
    return cfg


def _fail(exc: SyncError) -> NoReturn:
    logger.error("%s: %s", type(exc).__name__, exc)
    sys.exit(1)


@click.group()
@click.option("--env-file", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Load variables from this .env file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(env_file: Path | None, verbose: bool) -> None:
    """profilesync – Mirror personal activity into JSON files and Gists.

    Every command is an independent fetch → transform → persist run.
    Credentials come from environment variables (or a .env file); a
    failed run exits with status 1.
    """
    load_dotenv(dotenv_path=env_file or Path.cwd() / ".env")
    _setup_logging(verbose)


# ─── Commands ────────────────────────────────────────────────────


@cli.command()
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), default=None, help="Directory for JSON files and photos/")
@click.option("--count", type=int, default=None, help="Number of feed items to fetch")
def instagram(output_dir: Path | None, count: int | None) -> None:
    """Sync the latest Instagram posts and their photos."""
    from .sources.instagram import InstagramSync

    try:
        cfg = _load(InstagramConfig.from_env, output_dir=output_dir, feed_count=count)
        with InstagramSync(cfg) as sync:
            sync.run()
    except SyncError as exc:
        _fail(exc)
    console.print("[green]✓[/green] Instagram data synced")
    _print_stats("Instagram Summary", sync.stats)


@cli.command()
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), default=None, help="Directory for photos.json and images/")
@click.option("--limit", type=int, default=None, help="Number of photos to request")
@click.option("--check", is_flag=True, help="Only test API connectivity")
def vsco(output_dir: Path | None, limit: int | None, check: bool) -> None:
    """Sync VSCO photos.

    Example: profilesync vsco --check
    """
    from .sources.vsco import VSCOSync

    try:
        cfg = _load(VSCOConfig.from_env, output_dir=output_dir, limit=limit)
        with VSCOSync(cfg) as sync:
            if check:
                results = sync.api.check_connection()
                for label, ok in results.items():
                    mark = "[green]✓[/green]" if ok else "[red]✗[/red]"
                    console.print(f"{mark} {label.capitalize()} connection")
                if not any(results.values()):
                    sys.exit(1)
                return
            sync.run()
    except SyncError as exc:
        _fail(exc)
    console.print(f"[green]✓[/green] VSCO data saved to {cfg.output_dir}")
    _print_stats("VSCO Summary", sync.stats)


@cli.command()
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), default=None, help="Directory for catalog files and cover/")
@click.option("--force", is_flag=True, help="Re-fetch even if the item count is unchanged")
def neodb(output_dir: Path | None, force: bool) -> None:
    """Sync completed NeoDB shelves (movies, tv, books, games)."""
    from .sources.neodb import NeoDBSync

    try:
        cfg = _load(NeoDBConfig.from_env, output_dir=output_dir)
        sync = NeoDBSync(cfg)
        updated = sync.run(force=force)
    except SyncError as exc:
        _fail(exc)
    if updated:
        console.print("[green]✓[/green] NeoDB catalog updated")
    else:
        console.print("[yellow]•[/yellow] NeoDB catalog already up to date")
    _print_stats("NeoDB Summary", sync.stats)


@cli.command()
@click.option("--limit", type=int, default=None, help="Number of tracks to fetch")
@click.option("--show-time/--no-show-time", default=None, help="Append when each track was played")
def lastfm(limit: int | None, show_time: bool | None) -> None:
    """Write recent Last.fm tracks to a Gist."""
    from .sources.lastfm import LastfmSync

    try:
        cfg = _load(LastfmConfig.from_env, fetch_limit=limit, show_time=show_time)
        with LastfmSync(cfg) as sync:
            sync.run()
    except SyncError as exc:
        _fail(exc)
    console.print("[green]✓[/green] Last.fm gist updated")
    _print_stats("Last.fm Summary", sync.stats)


@cli.command()
@click.option("--categories", default=None, help="Sentence category letters, e.g. 'abd'")
def hitokoto(categories: str | None) -> None:
    """Write a fresh Hitokoto sentence to a Gist."""
    from .sources.hitokoto import HitokotoSync

    cats = tuple(c for c in categories if c.strip()) if categories is not None else None
    try:
        cfg = _load(HitokotoConfig.from_env, categories=cats)
        with HitokotoSync(cfg) as sync:
            content = sync.run()
    except SyncError as exc:
        _fail(exc)
    console.print(content)
    console.print("[green]✓[/green] Hitokoto gist updated")


@cli.command()
def wakabox() -> None:
    """Write the weekly WakaTime language breakdown to a Gist."""
    from .sources.wakatime import WakaTimeSync

    try:
        cfg = _load(WakaTimeConfig.from_env)
        with WakaTimeSync(cfg) as sync:
            content = sync.run()
    except SyncError as exc:
        _fail(exc)
    if content is None:
        console.print("[yellow]•[/yellow] No WakaTime stats, gist left unchanged")
    else:
        console.print(content)
        console.print("[green]✓[/green] WakaTime gist updated")


@cli.command()
@click.argument("kmz_path", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.argument("geojson_path", required=False, type=click.Path(dir_okay=False, path_type=Path))
def footprints(kmz_path: Path | None, geojson_path: Path | None) -> None:
    """Convert a footprints KMZ map to GeoJSON.

    Without arguments the KMZ is downloaded from KMZ_URL first.

    Example: profilesync footprints footprints.kmz footprints/footprints.json
    """
    from .sources.footprints import FootprintsSync, convert_kmz

    if (kmz_path is None) != (geojson_path is None):
        raise click.UsageError("Pass both KMZ_PATH and GEOJSON_PATH, or neither")
    try:
        if kmz_path is not None and geojson_path is not None:
            geojson = convert_kmz(kmz_path, geojson_path)
            count = len(geojson["features"])
        else:
            cfg = _load(FootprintsConfig.from_env)
            with FootprintsSync(cfg) as sync:
                sync.run()
            count = sync.stats["features"]
    except SyncError as exc:
        _fail(exc)
    console.print(f"[green]✓[/green] {count} features written")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
