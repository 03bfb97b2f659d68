"""sbedit CLI: edit the Finder sidebar favorites list.

Commands:
    sbedit add PATH...          add paths to the end of the sidebar
    sbedit remove PATH          remove the first item pointing at PATH
    sbedit remove-all           remove every item
    sbedit list [--uri]         print the paths currently in the sidebar
    sbedit show                 table of items with ids and stale flags
    sbedit reload [--force]     restart sharedfilelistd (and Finder with --force)
    sbedit init-config          write a default sbedit.toml
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import click

from sbedit.config import SbeditConfig, init_config, load_config
from sbedit.errors import SbeditError
from sbedit.locator import load_locator
from sbedit.reload import reload_services
from sbedit.storage import ensure_archive, read_archive, write_archive
from sbedit.store import ItemStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg(config_path: str | None, archive_path: Path | None) -> SbeditConfig:
    try:
        cfg = load_config(config_path)
    except SbeditError as exc:
        raise click.ClickException(str(exc)) from exc
    if archive_path is not None:
        cfg.archive_path = archive_path
    return cfg


def _open_store(cfg: SbeditConfig) -> tuple[dict[str, Any], ItemStore]:
    """Bootstrap the archive if missing, then decode it."""
    try:
        if ensure_archive(cfg.archive_path):
            click.echo(f"Created an empty favorites file at {cfg.archive_path}", err=True)
        archive = read_archive(cfg.archive_path)
        locator = load_locator(cfg.locator.factory)
    except SbeditError as exc:
        raise click.ClickException(str(exc)) from exc
    return archive, ItemStore(archive, locator)


def _save(cfg: SbeditConfig, archive: dict[str, Any], reload_after: bool | None) -> None:
    try:
        write_archive(cfg.archive_path, archive)
    except SbeditError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo("Modifications successfully saved.")
    if reload_after is None:
        reload_after = cfg.reload.auto
    if reload_after:
        _reload(cfg, force=False)


def _reload(cfg: SbeditConfig, *, force: bool) -> None:
    click.echo("Reloading services...")
    result = reload_services(cfg.reload, force=force)
    if not result.daemon_restarted:
        click.echo(f"Could not restart {cfg.reload.daemon}; restarting {cfg.reload.finder}", err=True)
    click.echo("Services reloaded")


_reload_option = click.option(
    "--reload/--no-reload",
    "reload_after",
    default=None,
    help="Reload the sidebar after saving (default: [reload].auto)",
)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="sbedit")
@click.option("--config", "config_path", default=None, help="Path to sbedit.toml")
@click.option(
    "--archive",
    "archive_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Favorites file to edit (overrides config and $SBEDIT_ARCHIVE)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, archive_path: Path | None, verbose: bool) -> None:
    """sbedit: a tool to manipulate the Finder sidebar."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    ctx.obj = {"config_path": config_path, "archive_path": archive_path}


def _cfg(ctx: click.Context) -> SbeditConfig:
    return _load_cfg(ctx.obj["config_path"], ctx.obj["archive_path"])


# ---------------------------------------------------------------------------
# sbedit add / remove / remove-all
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("paths", nargs=-1, required=True)
@_reload_option
@click.pass_context
def add(ctx: click.Context, paths: tuple[str, ...], reload_after: bool | None) -> None:
    """Add all PATHS to the end of the sidebar.

    \b
    Each path is tried on its own: a path that fails is reported and skipped.
    The file is left untouched only when every path fails.
    """
    cfg = _cfg(ctx)
    archive, store = _open_store(cfg)

    result = store.add_many(paths)
    for path, outcome in result.outcomes:
        if isinstance(outcome, SbeditError):
            click.echo(f"Error adding item {path}: {outcome}", err=True)
        else:
            click.echo(f"Added {path} ({outcome.unique_id})")

    if not result.ok:
        raise click.ClickException("no items were added")
    _save(cfg, archive, reload_after)


@cli.command()
@click.argument("path")
@_reload_option
@click.pass_context
def remove(ctx: click.Context, path: str, reload_after: bool | None) -> None:
    """Remove the item pointing at PATH. A path that is not listed is not an error."""
    cfg = _cfg(ctx)
    archive, store = _open_store(cfg)
    try:
        removed = store.remove(path)
    except SbeditError as exc:
        raise click.ClickException(str(exc)) from exc

    if not removed:
        click.echo(f"No sidebar item for {path}")
        return
    click.echo(f"Removed {path}")
    _save(cfg, archive, reload_after)


@cli.command("remove-all")
@_reload_option
@click.pass_context
def remove_all(ctx: click.Context, reload_after: bool | None) -> None:
    """Remove all items from the sidebar."""
    cfg = _cfg(ctx)
    archive, store = _open_store(cfg)
    click.echo("Removing all items from the sidebar")
    store.clear()
    _save(cfg, archive, reload_after)


# ---------------------------------------------------------------------------
# sbedit list / show
# ---------------------------------------------------------------------------


@cli.command("list")
@click.option("--uri", is_flag=True, help="Print file:// URLs instead of paths")
@click.pass_context
def list_cmd(ctx: click.Context, uri: bool) -> None:
    """Display the paths currently in the sidebar, in order."""
    cfg = _cfg(ctx)
    _archive, store = _open_store(cfg)
    try:
        for path in store.paths():
            click.echo(Path(path).as_uri() if uri else path)
    except SbeditError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Show sidebar items with their ids, visibility and stale flags."""
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table

    cfg = _cfg(ctx)
    _archive, store = _open_store(cfg)
    try:
        entries = list(store.entries())
    except SbeditError as exc:
        raise click.ClickException(str(exc)) from exc

    table = Table(title=escape(str(cfg.archive_path)), show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Path")
    table.add_column("UUID", style="cyan")
    table.add_column("Visibility", justify="right")
    table.add_column("Props", justify="center")
    table.add_column("Stale", justify="center")
    for n, entry in enumerate(entries, 1):
        table.add_row(
            str(n),
            escape(entry.path),
            entry.item.unique_id,
            str(entry.item.visibility),
            "-" if entry.item.custom_properties is None else str(len(entry.item.custom_properties)),
            "[yellow]yes[/yellow]" if entry.stale else "",
        )
    Console().print(table)


# ---------------------------------------------------------------------------
# sbedit reload / init-config
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--force", is_flag=True, help="Also restart Finder so changes show immediately")
@click.pass_context
def reload(ctx: click.Context, force: bool) -> None:
    """Reload the Finder sidebar by restarting sharedfilelistd.

    \b
    Changes can take up to a minute to appear. --force also kills Finder,
    which makes them visible immediately.
    """
    _reload(_cfg(ctx), force=force)


@cli.command("init-config")
@click.pass_context
def init_config_cmd(ctx: click.Context) -> None:
    """Write a default sbedit.toml."""
    try:
        path = init_config(ctx.obj["config_path"])
    except FileExistsError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created {path}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
