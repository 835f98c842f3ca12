from typing import Iterable

from rich.console import Console
from rich.table import Table

from schematic_records.models import SchematicRecord


def get_rich_console() -> Console: return Console(stderr=True)


def _fmt_ts(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"


def records_table(records: Iterable[SchematicRecord], title: str = "Schematic records") -> Table:
    """Таблица для `list`/`show`/`prune`. Ключи показываются целиком, они нужны для копирования."""
    table = Table(title=title)
    table.add_column("ID", justify="right")
    table.add_column("File")
    table.add_column("Download key")
    table.add_column("Delete key")
    table.add_column("Uploader")
    table.add_column("Type")
    table.add_column("Last accessed (UTC)")
    table.add_column("Expired (UTC)")
    for r in records:
        table.add_row(
            str(r.id),
            r.file_name,
            r.download_key,
            r.delete_key,
            r.uploader or "-",
            r.schem_type or "-",
            _fmt_ts(r.last_accessed),
            _fmt_ts(r.expired),
        )
    return table
