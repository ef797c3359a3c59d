"""Module entrypoint to run `python -m sqlhub`."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from .channels import ProgressChannel
from .config import AppConfig, load_config
from .errors import DbError
from .manager import DbManager, set_manager
from .models import ErrorResult, ExecOptions, ExecResult, QueryResult, SqlResult
from .transfer.types import CsvImportConfig, DataFormat, ExportConfig, ImportConfig

LOG = logging.getLogger("sqlhub")


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="sqlhub", description="Run SQL and move table data across database engines.")
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument("--log-level", help="Override the configured log level")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("connections", help="List stored connections")

    run = commands.add_parser("exec", help="Execute a SQL script")
    run.add_argument("connection", help="Connection id or name")
    run.add_argument("script", help="Script file, or - for stdin")
    run.add_argument("--database", help="Database to run against")
    run.add_argument("--max-rows", type=int, help="Row cap injected into queries (0 for unlimited)")
    run.add_argument("--no-stop-on-error", action="store_true", help="Keep going after a failing statement")
    run.add_argument("--transactional", action="store_true", help="Wrap the script in one transaction")

    export = commands.add_parser("export", help="Export tables as SQL, JSON or CSV")
    export.add_argument("connection", help="Connection id or name")
    export.add_argument("--table", dest="tables", action="append", required=True, help="Table to export (repeatable)")
    export.add_argument("--format", choices=[member.value for member in DataFormat], default=DataFormat.SQL.value)
    export.add_argument("--database", default="", help="Database holding the tables")
    export.add_argument("--where", help="WHERE clause applied to every table")
    export.add_argument("--limit", type=int, help="Maximum rows per table")
    export.add_argument("--no-schema", action="store_true", help="Skip CREATE statements (SQL format)")
    export.add_argument("--no-data", action="store_true", help="Skip INSERT statements (SQL format)")
    export.add_argument("--output", type=Path, help="Write to a file instead of stdout")

    load = commands.add_parser("import", help="Import a SQL, JSON or CSV file")
    load.add_argument("connection", help="Connection id or name")
    load.add_argument("file", type=Path, help="File to import")
    load.add_argument("--table", help="Target table (JSON and CSV)")
    load.add_argument("--format", choices=[member.value for member in DataFormat], help="Defaults to the file extension")
    load.add_argument("--database", default="", help="Target database")
    load.add_argument("--truncate", action="store_true", help="Empty the table first")
    load.add_argument("--no-stop-on-error", action="store_true", help="Keep going after a failing row")
    load.add_argument("--no-transaction", action="store_true", help="Do not wrap SQL imports in a transaction")
    load.add_argument("--delimiter", default=",", help="CSV field delimiter")
    load.add_argument("--no-header", action="store_true", help="CSV input has no header row")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    config = load_config(args.config)
    logging.basicConfig(
        level=(args.log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.command == "connections":
        return _list_connections(config)

    manager = DbManager.from_config(config)
    set_manager(manager)
    try:
        record = config.find_connection(args.connection)
        if record is None:
            print(f"Unknown connection '{args.connection}'", file=sys.stderr)
            return 2
        if args.command == "exec":
            return _exec(manager, config, record.id, args)
        if args.command == "export":
            return _export(manager, record.id, args)
        return _import(manager, record.id, args)
    except DbError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    finally:
        manager.run(manager.close())


def _list_connections(config: AppConfig) -> int:
    for record in config.connections:
        location = record.database or ""
        if record.host:
            port = f":{record.port}" if record.port else ""
            location = f"{record.host}{port}/{location}"
        print(f"{record.id}\t{record.name}\t{record.database_type}\t{location}")
    return 0


def _exec(manager: DbManager, config: AppConfig, connection_id: str, args: argparse.Namespace) -> int:
    script = sys.stdin.read() if args.script == "-" else Path(args.script).read_text()
    defaults = config.exec.to_options()
    max_rows = defaults.max_rows if args.max_rows is None else (args.max_rows or None)
    options = ExecOptions(
        stop_on_error=defaults.stop_on_error and not args.no_stop_on_error,
        transactional=defaults.transactional or args.transactional,
        max_rows=max_rows,
    )
    channel: ProgressChannel = ProgressChannel()
    manager.run(manager.execute_script_streaming(connection_id, script, channel, args.database, options))
    failed = False
    for progress in channel.drain():
        print(f"-- [{progress.current}/{progress.total}] {progress.result.sql}")
        _print_result(progress.result)
        failed = failed or progress.result.is_error
    return 1 if failed else 0


def _print_result(result: SqlResult) -> None:
    if isinstance(result, QueryResult):
        print("\t".join(result.columns))
        for row in result.rows:
            print("\t".join("NULL" if cell is None else cell for cell in row))
        print(f"({len(result.rows)} row(s), {result.elapsed_ms} ms)")
    elif isinstance(result, ExecResult):
        print(f"{result.message or 'OK'} ({result.elapsed_ms} ms)")
    elif isinstance(result, ErrorResult):
        print(f"ERROR: {result.message}")


def _export(manager: DbManager, connection_id: str, args: argparse.Namespace) -> int:
    export_config = ExportConfig(
        format=DataFormat(args.format),
        database=args.database,
        tables=tuple(args.tables),
        include_schema=not args.no_schema,
        include_data=not args.no_data,
        where_clause=args.where,
        limit=args.limit,
    )
    result = manager.run(manager.export_data(connection_id, export_config))
    if not result.success:
        print(f"Export failed: {result.error}", file=sys.stderr)
        return 1
    if args.output:
        args.output.write_text(result.output)
    else:
        sys.stdout.write(result.output)
    LOG.info("Exported %d row(s) in %d ms", result.rows_exported, result.elapsed_ms)
    return 0


def _import(manager: DbManager, connection_id: str, args: argparse.Namespace) -> int:
    data_format = DataFormat(args.format) if args.format else DataFormat.from_extension(args.file.suffix)
    if data_format is None:
        print(f"Cannot infer the format of '{args.file}'; pass --format", file=sys.stderr)
        return 2
    csv_config = CsvImportConfig(field_delimiter=args.delimiter, has_header=not args.no_header)
    import_config = ImportConfig(
        format=data_format,
        database=args.database,
        table=args.table,
        stop_on_error=not args.no_stop_on_error,
        use_transaction=not args.no_transaction,
        truncate_before_import=args.truncate,
        csv_config=csv_config,
        file_name=args.file.name,
    )
    data = args.file.read_text(encoding=csv_config.encoding)
    result = manager.run(manager.import_data(connection_id, import_config, data))
    for error in result.errors:
        print(error, file=sys.stderr)
    print(f"Imported {result.rows_imported} row(s) in {result.elapsed_ms} ms")
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
