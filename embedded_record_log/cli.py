"""record-log CLI: query and edit a tagged record log from the shell.

Commands:
    record-log find QUERY        print matching records (table or JSON lines)
    record-log insert RECORD     append one record
    record-log delete QUERY      tombstone matching records

QUERY, RECORD, --sort and --projection are JSON objects, e.g.

    record-log --db users.log -t bio find '{"$text": "rust"}' --sort '{"age": -1}'
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.table import Table

from .codec import dump_json
from .database import Database
from .errors import RecordLogError
from .query import MULTI_FIELD_MODES

_console = Console()


def _parse_json(value: Optional[str], what: str) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    try:
        obj = json.loads(value)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"invalid JSON: {exc.msg}", param_hint=what) from exc
    if not isinstance(obj, dict):
        raise click.BadParameter("expected a JSON object", param_hint=what)
    return obj


def _render_table(rows: List[Dict[str, Any]]) -> Table:
    columns: List[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    table = Table(show_header=True, header_style="bold")
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*("" if col not in row else str(row[col]) for col in columns))
    return table


@click.group()
@click.option("--db", "db_path", envvar="RECORD_LOG_PATH", default=None,
              type=click.Path(dir_okay=False), help="Log file (or $RECORD_LOG_PATH).")
@click.option("-t", "--text-field", "text_fields", multiple=True,
              help="Field searched by $text; repeatable.")
@click.option("--multi-field", type=click.Choice(MULTI_FIELD_MODES), default="and", show_default=True,
              help="How several bare field keys in one query combine.")
@click.pass_context
def cli(ctx: click.Context, db_path: str, text_fields: tuple, multi_field: str) -> None:
    """Query and edit a tagged record log."""
    # Opened lazily so sub-command --help works without --db
    ctx.obj = {"db_path": db_path, "text_fields": text_fields, "multi_field": multi_field}


def _open_db(settings: Dict[str, Any]) -> Database:
    if not settings["db_path"]:
        raise click.UsageError("Missing option '--db' (or set RECORD_LOG_PATH).")
    return Database(settings["db_path"], settings["text_fields"], multi_field=settings["multi_field"])


@cli.command()
@click.argument("query", default="{}")
@click.option("--sort", "sort_json", default=None, help='e.g. {"age": -1, "name": 1}')
@click.option("--projection", "projection_json", default=None, help='e.g. {"name": 1}')
@click.option("--limit", type=int, default=None)
@click.option("--skip", type=int, default=0)
@click.option("--json", "as_json", is_flag=True, help="Print JSON lines instead of a table.")
@click.pass_obj
def find(settings: Dict[str, Any], query: str, sort_json: Optional[str], projection_json: Optional[str],
         limit: Optional[int], skip: int, as_json: bool) -> None:
    """Print records matching QUERY."""
    q = _parse_json(query, "QUERY")
    options: Dict[str, Any] = {"skip": skip}
    if limit is not None:
        options["limit"] = limit
    sort = _parse_json(sort_json, "--sort")
    if sort:
        options["sort"] = sort
    projection = _parse_json(projection_json, "--projection")
    if projection:
        options["projection"] = projection
    try:
        rows = _open_db(settings).find(q, options)
    except (RecordLogError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc
    if as_json:
        for row in rows:
            click.echo(dump_json(row))
        return
    if not rows:
        _console.print("[dim]no records[/dim]")
        return
    _console.print(_render_table(rows))


@cli.command()
@click.argument("record")
@click.pass_obj
def insert(settings: Dict[str, Any], record: str) -> None:
    """Append RECORD to the log."""
    data = _parse_json(record, "RECORD")
    try:
        _open_db(settings).insert(data)
    except OSError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.argument("query")
@click.pass_obj
def delete(settings: Dict[str, Any], query: str) -> None:
    """Tombstone records matching QUERY."""
    q = _parse_json(query, "QUERY")
    try:
        n = _open_db(settings).delete(q)
    except (RecordLogError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"deleted {n}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
