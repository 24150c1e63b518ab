"""``state`` sub-commands for the repository key/value store."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from hookwarden.core.errors import StateStoreError

from ..helpers import ErrorMessages, configure_global_logging, create_engine
from ..output import console, print_json

state_app = typer.Typer(name="state", help="Read and write the hook state store")


@state_app.command("get")
def state_get(key: str = typer.Argument(..., help="Logical key, e.g. contexts/main.md")) -> None:
    """Print the value stored under a key."""
    configure_global_logging(console)
    store = create_engine(console).state_store
    value = asyncio.run(store.read(key))
    if value is None:
        console.print(f"[red]{ErrorMessages.KEY_NOT_FOUND}:[/red] {key}")
        raise typer.Exit(1)
    typer.echo(value, nl=False)


@state_app.command("put")
def state_put(
    key: str = typer.Argument(..., help="Logical key"),
    value: str | None = typer.Argument(None, help="Value (default: read from --file or stdin)"),
    file: Path | None = typer.Option(
        None, "--file", "-f", exists=True, readable=True, help="Read the value from a file"
    ),
) -> None:
    """Store a value under a key."""
    configure_global_logging(console)
    if value is None:
        value = (
            file.read_text(encoding="utf-8") if file
            else typer.get_text_stream("stdin").read()
        )
    store = create_engine(console).state_store
    try:
        asyncio.run(store.write(key, value))
    except (StateStoreError, ValueError) as e:
        console.print(f"[red]Cannot store {key}:[/red] {e}")
        raise typer.Exit(1) from None
    console.print(f"[green]Stored[/green] {key} ({len(value)} chars)")


@state_app.command("list")
def state_list(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output keys as JSON"),
) -> None:
    """List stored keys."""
    configure_global_logging(console)
    keys = asyncio.run(create_engine(console).state_store.list_keys())
    if json_output:
        print_json(keys)
        return
    if not keys:
        console.print("[dim]State store is empty[/dim]")
    for key in keys:
        console.print(key)
