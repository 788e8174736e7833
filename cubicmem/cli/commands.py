"""CLI commands for cubicmem."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cubicmem import __logo__, __version__

app = typer.Typer(
    name="cubicmem",
    help=f"{__logo__} cubicmem - two-tier agent memory",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} cubicmem v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """cubicmem - two-tier agent memory."""
    pass


# ============================================================================
# Shared helpers
# ============================================================================


DbOption = typer.Option(None, "--db", help="SQLite database file (defaults to config, then ~/.cubicmem/memories.db)")


def _memory_config(db: Path | None):
    """Resolve the memory config; the CLI always uses a file so state survives between runs."""
    from cubicmem.config.loader import get_data_dir, load_config
    from cubicmem.logging_config import setup_logging

    config = load_config()
    setup_logging(config.logging.level, config.logging.file)
    memory = config.memory
    if db is not None:
        memory = memory.model_copy(update={"db_path": str(db)})
    elif memory.db_path == ":memory:":
        memory = memory.model_copy(update={"db_path": str(get_data_dir() / "memories.db")})
    return memory


def _run(db: Path | None, action):
    """Open the repository, run ``action(repo)`` and always close it."""
    from cubicmem.errors import CubicMemError
    from cubicmem.memory import create_memory_repository

    async def run():
        repo = await create_memory_repository(_memory_config(db))
        try:
            return await action(repo)
        finally:
            await repo.close()

    try:
        return asyncio.run(run())
    except CubicMemError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _run_store(db: Path | None, action):
    """Like _run, but against the SQLite store alone (administrative commands)."""
    from cubicmem.errors import CubicMemError
    from cubicmem.memory.sqlite_store import SQLiteMemory

    async def run():
        store = SQLiteMemory(_memory_config(db).db_path)
        await store.initialize()
        try:
            return await action(store)
        finally:
            await store.close()

    try:
        return asyncio.run(run())
    except CubicMemError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _memory_table(memories, title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Importance", style="magenta")
    table.add_column("Tags", style="yellow")
    table.add_column("Sentence")
    for m in memories:
        table.add_row(m.id, f"{m.importance:.2f}", ", ".join(m.tags), m.sentence)
    return table


# ============================================================================
# Memory commands
# ============================================================================


@app.command()
def remember(
    sentence: str = typer.Argument(..., help="The fact to remember"),
    tag: list[str] = typer.Option(..., "--tag", "-t", help="Tag (repeatable, at least one)"),
    importance: float = typer.Option(None, "--importance", "-i", help="Importance 0..1"),
    db: Path = DbOption,
):
    """Store a new memory."""
    memory_id = _run(db, lambda repo: repo.remember(sentence, importance, tag))
    console.print(f"[green]✓[/green] Remembered {memory_id}")


@app.command()
def recall(
    memory_id: str = typer.Argument(..., help="Memory id"),
    db: Path = DbOption,
):
    """Show one memory."""
    memory = _run(db, lambda repo: repo.recall(memory_id))
    if memory is None:
        console.print(f"[yellow]No memory {memory_id}[/yellow]")
        raise typer.Exit(1)
    console.print(_memory_table([memory], title="Memory"))


@app.command()
def search(
    content: str = typer.Option(None, "--content", "-c", help="Substring of the sentence"),
    content_regex: str = typer.Option(None, "--regex", "-r", help="Regex on the sentence"),
    tag: list[str] = typer.Option(None, "--tag", "-t", help="Required tag (repeatable)"),
    tags_regex: str = typer.Option(None, "--tags-regex", help="Regex matching any tag"),
    sort_by: str = typer.Option("both", "--sort-by", help="importance, timestamp or both"),
    sort_order: str = typer.Option("desc", "--order", help="asc or desc"),
    limit: int = typer.Option(20, "--limit", "-n"),
    db: Path = DbOption,
):
    """Search memories."""
    from cubicmem.memory.types import MemorySearchOptions

    options = MemorySearchOptions(
        content=content,
        content_regex=content_regex,
        tags=tag or None,
        tags_regex=tags_regex,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
    )
    memories = _run(db, lambda repo: repo.search(options))
    if not memories:
        console.print("No memories found.")
        return
    console.print(_memory_table(memories, title=f"{len(memories)} memories"))


@app.command()
def forget(
    memory_id: str = typer.Argument(..., help="Memory id"),
    db: Path = DbOption,
):
    """Delete a memory."""
    if _run(db, lambda repo: repo.forget(memory_id)):
        console.print(f"[green]✓[/green] Forgot {memory_id}")
    else:
        console.print(f"[yellow]No memory {memory_id}[/yellow]")
        raise typer.Exit(1)


@app.command()
def stats(db: Path = DbOption):
    """Show store statistics."""
    store_stats = _run_store(db, lambda store: store.get_stats())

    table = Table(title="Memory Store")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Memories", str(store_stats.total_memories))
    table.add_row("Tags", str(store_stats.tag_count))
    table.add_row("Pages", str(store_stats.database_size))
    if store_stats.oldest_memory:
        table.add_row("Oldest", store_stats.oldest_memory.sentence)
    if store_stats.newest_memory:
        table.add_row("Newest", store_stats.newest_memory.sentence)
    console.print(table)


@app.command()
def vacuum(db: Path = DbOption):
    """Reclaim unused space in the database file."""
    _run_store(db, lambda store: store.vacuum())
    console.print("[green]✓[/green] Vacuumed")


if __name__ == "__main__":
    app()
