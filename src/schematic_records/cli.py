import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import typer

from schematic_records import create_schematic_client
from schematic_records.client import SchematicClient
from schematic_records.exceptions import RecordStoreError
from schematic_records.logging import configure
from schematic_records.models import SchematicRecord
from schematic_records.pruner import run_pruner
from schematic_records.utils.cli_utils import get_rich_console, records_table

T = TypeVar("T")

app = typer.Typer(help="CLI for schematic-records management.")
logger = logging.getLogger(__name__)
console = get_rich_console()


def _run(action: Callable[[SchematicClient], Awaitable[T]]) -> T:
    """Создает клиент, выполняет действие и закрывает пул. Ошибки учета -> exit 1."""
    async def _wrapper():
        client = create_schematic_client()
        try:
            return await action(client)
        finally:
            await client.aclose()

    try:
        return asyncio.run(_wrapper())
    except RecordStoreError as e:
        console.print(f"[bold red]✖[/bold red] {e}")
        raise typer.Exit(code=1)


def _echo_json(records: list[SchematicRecord]) -> None:
    typer.echo(json.dumps([r.model_dump(mode="json", by_alias=True) for r in records], indent=2))


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Overrides LOG_LEVEL from the environment."),
):
    configure(log_level)


@app.command()
def init():
    """Creates the accounting table if it does not exist yet."""
    console.rule("[bold cyan]Storage Initialization[/bold cyan]")
    _run(lambda client: client.init_storage())
    console.print("[bold green]✔[/bold green] Table 'accounting' is ready.")


@app.command()
def check():
    """Checks database connectivity."""
    console.rule("[bold cyan]Connection Check[/bold cyan]")
    statuses = _run(lambda client: client.check_connections())
    db_status = statuses.get("database", "unknown error")
    if db_status == "ok":
        console.print("[bold green]✔[/bold green] Database connection: OK")
    else:
        console.print(f"[bold red]✖[/bold red] Database connection: FAILED ({db_status})")
        raise typer.Exit(code=1)


@app.command("list")
def list_records(
    include_expired: bool = typer.Option(False, "--all", help="Include expired records."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
):
    """Lists active (or all) schematic records."""
    if include_expired:
        records = _run(lambda client: client.records.get_all_records())
    else:
        records = _run(lambda client: client.records.get_all_unexpired_records())
    if as_json:
        _echo_json(records)
    else:
        console.print(records_table(records))


@app.command()
def show(
    download_key: Optional[str] = typer.Option(None, "--download-key"),
    delete_key: Optional[str] = typer.Option(None, "--delete-key"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
):
    """Shows one record found by its download or delete key."""
    if (download_key is None) == (delete_key is None):
        raise typer.BadParameter("Pass exactly one of --download-key / --delete-key.")
    if download_key is not None:
        record = _run(lambda client: client.records.get_by_download_key(download_key))
    else:
        record = _run(lambda client: client.records.get_by_delete_key(delete_key))
    if as_json:
        _echo_json([record])
    else:
        console.print(records_table([record], title=f"Record {record.id}"))


@app.command()
def expire(record_id: int = typer.Argument(..., help="Record id.")):
    """Marks one record as expired."""
    _run(lambda client: client.records.expire_record(record_id))
    console.print(f"[bold green]✔[/bold green] Record {record_id} expired.")


@app.command()
def prune(
    older_than: Optional[int] = typer.Option(
        None, "--older-than", min=0, help="Age in ms. Defaults to `prune` from config.json."
    ),
    watch: bool = typer.Option(False, "--watch", help="Keep sweeping every interval until Ctrl-C."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
):
    """Expires records that were not accessed for too long."""
    if watch:
        if older_than == 0:
            raise typer.BadParameter("--watch needs a positive interval.", param_hint="--older-than")
        try:
            sweeps = _run(lambda client: run_pruner(client, interval_ms=older_than))
        except KeyboardInterrupt:
            console.print("Pruner interrupted.")
            return
        console.print(f"Pruner finished after {sweeps} sweep(s).")
        return

    expired = _run(lambda client: client.prune(older_than))
    if as_json:
        _echo_json(expired)
    elif expired:
        console.print(records_table(expired, title="Expired records"))
    else:
        console.print("Nothing to prune.")


@app.command()
def keys(as_json: bool = typer.Option(False, "--json", help="Print JSON.")):
    """Generates a fresh unique download/delete key pair."""
    download_key, delete_key = _run(lambda client: client.issue_keys())
    if as_json:
        typer.echo(json.dumps({"downloadKey": download_key, "deleteKey": delete_key}))
    else:
        console.print(f"Download key: [bold]{download_key}[/bold]")
        console.print(f"Delete key:   [bold]{delete_key}[/bold]")


if __name__ == "__main__":
    app()
