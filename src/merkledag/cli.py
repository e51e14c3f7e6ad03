"""CLI for Merkle DAG."""

import json
import logging
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .builder import AddStats, DagBuilder
from .config import DagConfig, get_config_path, get_store_path, load_config, save_config
from .errors import DagError
from .hasher import HashlibHasher
from .node import from_path
from .planner import plan_chunks
from .store import open_store

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="mdag")
@click.option("-v", "--verbose", is_flag=True, help="Log every stored object")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Merkle DAG - Content-addressed snapshots of files and directories.

    \b
        mdag init     Write a default config for this project
        mdag add      Store a file or directory and print its root digest
        mdag plan     Show how a file of a given size is chunked
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@main.command()
@click.argument(
    "project_root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
)
@click.option("--force", is_flag=True, help="Overwrite an existing config")
def init(project_root: Path, force: bool) -> None:
    """Write a default config to PROJECT_ROOT/.merkledag/config.json."""
    config_path = get_config_path(project_root)
    if config_path.exists() and not force:
        err_console.print(f"[yellow]Config already exists:[/yellow] {config_path}")
        raise SystemExit(1)
    save_config(DagConfig(), project_root)
    console.print(f"[green]Wrote[/green] {config_path}")


@main.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--store-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Where to store objects (default: .merkledag/ in the current directory)",
)
@click.option("--backend", type=click.Choice(["file", "lance", "memory"]), help="Store backend")
@click.option("--chunk-size", type=click.IntRange(min=1), help="Leaf chunk size in bytes")
@click.option("--fanout", type=click.IntRange(min=2), help="Maximum links per indirect object")
@click.option("--hash", "hash_algorithm", help="hashlib algorithm name")
@click.option("--workers", type=click.IntRange(min=1), help="Build top-level children in parallel")
@click.pass_context
def add(
    ctx: click.Context,
    path: Path,
    store_dir: Path | None,
    backend: str | None,
    chunk_size: int | None,
    fanout: int | None,
    hash_algorithm: str | None,
    workers: int | None,
) -> None:
    """Store PATH in the object store and print its root digest."""
    project_root = Path.cwd()
    try:
        config = _resolve_config(
            project_root,
            store_backend=backend,
            chunk_size=chunk_size,
            fanout=fanout,
            hash_algorithm=hash_algorithm,
            workers=workers,
        )
    except (ValidationError, json.JSONDecodeError) as e:
        err_console.print(f"[red]Invalid configuration:[/red] {e}")
        raise SystemExit(1)

    store_path = store_dir or get_store_path(project_root, config.store_backend)

    try:
        store = open_store(config.store_backend, store_path)
        builder = DagBuilder(
            store,
            HashlibHasher(config.hash_algorithm),
            chunk_size=config.chunk_size,
            fanout=config.fanout,
            workers=config.workers,
        )
        digest = builder.add(from_path(path, config.exclude_patterns))
    except (DagError, OSError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    console.print(digest.hex())
    if ctx.obj.get("verbose"):
        console.print(_stats_table(builder.stats))


@main.command()
@click.argument("size", type=click.IntRange(min=0))
@click.option("--chunk-size", type=click.IntRange(min=1), help="Leaf chunk size in bytes")
@click.option("--fanout", type=click.IntRange(min=2), help="Maximum links per indirect object")
def plan(size: int, chunk_size: int | None, fanout: int | None) -> None:
    """Show how a file of SIZE bytes is split into chunks."""
    try:
        config = load_config(Path.cwd())
    except (ValidationError, json.JSONDecodeError) as e:
        err_console.print(f"[red]Invalid configuration:[/red] {e}")
        raise SystemExit(1)
    result = plan_chunks(size, chunk_size or config.chunk_size, fanout or config.fanout)

    table = Table(title="Chunk plan", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Length", str(result.length))
    table.add_row("Chunk size", str(result.chunk_size))
    table.add_row("Fan-out", str(result.fanout))
    table.add_row("Chunks", str(result.num_chunks))
    table.add_row("Height", str(result.height))
    console.print(table)


def _resolve_config(project_root: Path, **overrides) -> DagConfig:
    """Project config with non-empty command line options applied on top."""
    config = load_config(project_root)
    data = config.model_dump()
    data.update({key: value for key, value in overrides.items() if value is not None})
    return DagConfig.model_validate(data)


def _stats_table(stats: AddStats) -> Table:
    table = Table(title="Objects written", show_header=False)
    table.add_column("Kind", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Leaves", str(stats.leaves))
    table.add_row("Indirect", str(stats.indirects))
    table.add_row("Trees", str(stats.trees))
    table.add_row("Total", str(stats.objects_written))
    table.add_row("Bytes", str(stats.bytes_written))
    return table


if __name__ == "__main__":
    main()
