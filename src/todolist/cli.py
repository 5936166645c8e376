"""todolist CLI entry point."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import Config
from .state.adapter import PersistenceAdapter
from .state.persistence import JsonFileStore
from .state.tasks import TaskListStore
from .utils.logger import Logger


def build_store(config: Config, data_file: Optional[Path] = None) -> TaskListStore:
    """Wire a store to the configured file backend and event log."""
    path = data_file or config.storage_path()
    adapter = PersistenceAdapter(JsonFileStore(path), key=config.storage_key())
    return TaskListStore(adapter, logger=Logger(config.logs_dir()))


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option(
    "--data-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Storage file to use instead of the configured one.",
)
@click.pass_context
def main(ctx: click.Context, data_file: Optional[Path]) -> None:
    """todolist - a personal task list."""
    ctx.ensure_object(dict)
    ctx.obj["data_file"] = data_file
    if ctx.invoked_subcommand is None:
        _start_tui(data_file)


def _start_tui(data_file: Optional[Path]) -> None:
    """Helper to launch the Textual TUI."""
    from .interactive import TodoApp

    config = Config()
    app = TodoApp(build_store(config, data_file), heading=str(config.get("ui.title", "Todo List")))
    app.run()


@main.command()
@click.pass_context
def tui(ctx: click.Context) -> None:
    """Start Textual TUI."""
    _start_tui(ctx.obj["data_file"])


@main.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Print the saved task list."""
    store = build_store(Config(), ctx.obj["data_file"])
    asyncio.run(store.hydrate())

    if store.hydration_error is not None:
        click.echo(f"Could not load saved todos: {store.hydration_error}", err=True)
        ctx.exit(1)

    tasks = store.list_all()
    if not tasks:
        click.echo("No todos.")
        return
    for task in tasks:
        mark = "x" if task.done else " "
        click.echo(f"[{mark}] {task.id}  {task.text}")


if __name__ == "__main__":
    main()
