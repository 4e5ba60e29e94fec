from __future__ import annotations

import argparse
import locale
import os
import sys
from pathlib import Path

import pandas as pd

from expansion_results.api.client import ApiClient
from expansion_results.config.loader import (
    DEFAULT_CONFIG_PATH,
    AppConfig,
    ConfigError,
    load_config,
    load_env_file,
)
from expansion_results.logging.error_log import ErrorLogBuffer
from expansion_results.logging.init import log_summary, set_debug, setup_logging
from expansion_results.models.dto import AUTH_SQL_SERVER, AUTH_WINDOWS
from expansion_results.models.metric import CalculationBasis
from expansion_results.models.pivot import PivotTable
from expansion_results.models.resolution import DataSourceState, ResolvedResults, ResultsQuery
from expansion_results.models.view_state import (
    BUILD_CYCLE_KEY,
    PAGE_SIZE_OPTIONS,
    PaginationState,
    SortConfig,
)
from expansion_results.services.csv_import import DEFAULT_PLAN_ID, import_csv_files
from expansion_results.services.database_connection import (
    FORM_STATE_FILE,
    DatabaseConnectionSession,
    ValidationError,
)
from expansion_results.services.export import Column, pivot_to_tsv, to_json, to_tsv
from expansion_results.services.pivot import format_value, pivot
from expansion_results.services.resolver import DataSourceResolver, resolve_scenarios
from expansion_results.services.sorting import paginate, sort_rows
from expansion_results.services.summary import render_import_summary, render_results_summary

"""CLI entrypoint.

Subcommands:
- pivot       build cycle x technology table of one metric (with baseline)
- table       sorted, paginated flat result rows
- export      current view as TSV or JSON (stdout or --output)
- scenarios   scenario list (fallback list when the backend has none)
- import-csv  solver-result CSV files -> one JSON array file
- db-status   backend datastore connection status / test / configure

Exit codes: 0 success, 1 fatal (config, validation, IO), 2 completed on
fallback data because the backend had no data or was unreachable.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_FALLBACK = 2

ENV_DB_PASSWORD = "EP_DB_PASSWORD"

FIXED_COLUMNS = [
    Column("technology", "Technology"),
    Column("buildCycle", "Build Cycle"),
    Column("status", "Status"),
    Column("year", "Year"),
]


def _add_query_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--scenario", type=int, default=None, help="Scenario id (omit for fallback data)")
    p.add_argument("--basis", default="Yearly", help="Calculation basis: Yearly or NPV")
    p.add_argument("--year", default=None, help="Filter by year")
    p.add_argument("--iteration", type=int, default=None, help="Filter by build cycle")
    p.add_argument("--sort", default=None, help="Sort key (column key, metric or technology)")
    p.add_argument("--desc", action="store_true", help="Sort descending")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="ep-results", description="Expansion plan results viewer")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config file")
    p.add_argument("--base-url", default=None, help="Override the API base URL")
    sub = p.add_subparsers(dest="command", required=True)

    pv = sub.add_parser("pivot", help="Pivot one metric by build cycle and technology")
    _add_query_args(pv)
    pv.add_argument("--metric", default=None, help="Metric name (default from config)")
    pv.add_argument("--format", choices=["table", "tsv"], default="table")

    tb = sub.add_parser("table", help="Sorted, paginated result rows")
    _add_query_args(tb)
    tb.add_argument("--page", type=int, default=1)
    tb.add_argument("--page-size", type=int, default=None, choices=PAGE_SIZE_OPTIONS)
    tb.add_argument("--columns", default=None, help="Comma separated metric names")

    ex = sub.add_parser("export", help="Export the sorted dataset as TSV or JSON")
    _add_query_args(ex)
    ex.add_argument("--format", choices=["tsv", "json"], default="tsv")
    ex.add_argument("--view", choices=["rows", "pivot"], default="rows")
    ex.add_argument("--metric", default=None, help="Metric for --view pivot")
    ex.add_argument("--columns", default=None, help="Comma separated metric names")
    ex.add_argument("--output", type=Path, default=None, help="Write to file instead of stdout")

    sub.add_parser("scenarios", help="List scenarios")

    ic = sub.add_parser("import-csv", help="Import solver-result CSV files")
    ic.add_argument("paths", nargs="+", type=Path)
    ic.add_argument("--output", type=Path, required=True, help="JSON array output file")
    ic.add_argument("--plan-id", default=DEFAULT_PLAN_ID)

    db = sub.add_parser("db-status", help="Backend datastore connection")
    db.add_argument("--test", action="store_true", help="Test the given connection")
    db.add_argument("--configure", action="store_true", help="Configure the given connection")
    db.add_argument("--disconnect", action="store_true")
    db.add_argument("--server", default=None)
    db.add_argument("--database", default=None)
    db.add_argument("--auth", choices=[AUTH_WINDOWS, AUTH_SQL_SERVER], default=None)
    db.add_argument("--username", default=None)
    return p.parse_args(argv)


def _write_output(text: str, output: Path | None) -> None:
    if output is None:
        print(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")


def _query(args: argparse.Namespace) -> ResultsQuery:
    return ResultsQuery(
        scenario_id=args.scenario,
        basis=CalculationBasis.parse(args.basis),
        year=args.year,
        iteration=args.iteration,
    )


def _sort_config(args: argparse.Namespace) -> SortConfig:
    if not args.sort:
        return SortConfig.unsorted()
    return SortConfig.descending(args.sort) if args.desc else SortConfig.ascending(args.sort)


def _select_metric(resolved: ResolvedResults, requested: str | None, cfg: AppConfig) -> str:
    names = resolved.data.metric_names
    if requested:
        if requested not in names:
            raise ValueError(f"unknown metric {requested!r}; available: {', '.join(names)}")
        return requested
    if cfg.view.default_metric in names:
        return cfg.view.default_metric
    if not names:
        raise ValueError("result set has no metrics")
    return names[0]


def _build_pivot(resolved: ResolvedResults, metric: str, args: argparse.Namespace) -> PivotTable:
    rows = resolved.data.rows
    descriptor = resolved.data.descriptor(metric)
    sort = _sort_config(args)
    if sort.is_active and sort.key != BUILD_CYCLE_KEY:
        # accept a display label (e.g. "Adv CC") as well as the technology id
        labels = pivot(rows, metric).labels
        by_label = {label: tech for tech, label in labels.items()}
        key = by_label.get(sort.key, sort.key)
        sort = SortConfig(key, sort.direction)
    return pivot(rows, metric, sort=sort, descriptor=descriptor)


def _columns(resolved: ResolvedResults, selection: str | None) -> list[Column]:
    names = [c.strip() for c in selection.split(",")] if selection else resolved.data.metric_names
    return FIXED_COLUMNS + [Column(n, n) for n in names if n]


def _display(column: Column, value: object) -> object:
    # fixed columns are identifiers, only metric values get abbreviated
    return value if column in FIXED_COLUMNS else format_value(value)


def _emit_summary(line: str) -> None:
    # log_summary adds the "SUMMARY " label itself
    log_summary(line[len("SUMMARY "):])


def _exit_code(resolved: ResolvedResults) -> int:
    if resolved.state in (DataSourceState.LIVE, DataSourceState.LOCAL):
        return EXIT_SUCCESS
    return EXIT_FALLBACK


def _cmd_pivot(args, cfg, resolved, logger) -> int:
    metric = _select_metric(resolved, args.metric, cfg)
    table = _build_pivot(resolved, metric, args)
    if args.format == "tsv":
        print(pivot_to_tsv(table))
    else:
        df = table.to_frame().map(format_value)
        unit = f" ({table.unit})" if table.unit else ""
        print(f"{metric}{unit}")
        print(df.to_string())
    _emit_summary(render_results_summary(resolved, table))
    return _exit_code(resolved)


def _cmd_table(args, cfg, resolved, logger) -> int:
    rows = sort_rows(resolved.data.rows, _sort_config(args))
    state = PaginationState(page=args.page, page_size=args.page_size or cfg.view.default_page_size)
    page = paginate(rows, state.page, state.page_size)
    columns = _columns(resolved, args.columns)
    records = [{c.label: _display(c, r.field_value(c.key)) for c in columns} for r in page.items]
    df = pd.DataFrame.from_records(records, columns=[c.label for c in columns])
    print(df.to_string(index=False))
    print(f"{page.range_label()} (page {page.page}/{max(page.total_pages, 1)})")
    _emit_summary(render_results_summary(resolved))
    return _exit_code(resolved)


def _cmd_export(args, cfg, resolved, logger) -> int:
    if args.view == "pivot":
        metric = _select_metric(resolved, args.metric, cfg)
        table = _build_pivot(resolved, metric, args)
        if args.format == "json":
            frame = table.to_frame().reset_index()
            text = frame.to_json(orient="records", indent=2)
        else:
            text = pivot_to_tsv(table)
    else:
        rows = sort_rows(resolved.data.rows, _sort_config(args))
        if args.format == "json":
            text = to_json(rows)
        else:
            text = to_tsv(_columns(resolved, args.columns), rows)
    _write_output(text, args.output)
    if args.output is not None:
        logger.info(f"exported {args.format} to {args.output}")
    _emit_summary(render_results_summary(resolved))
    return _exit_code(resolved)


def _cmd_scenarios(client: ApiClient, error_log: ErrorLogBuffer) -> int:
    resolved = resolve_scenarios(client, error_log)
    for s in resolved.scenarios:
        print(f"{s.ep_scenario_id}\t{s.ep_scenario_description or ''}")
    source = "live" if resolved.is_live else "fallback"
    log_summary(f"source={source} state={resolved.state.value} scenarios={len(resolved.scenarios)}")
    return EXIT_SUCCESS if resolved.is_live else EXIT_FALLBACK


def _cmd_import_csv(args, logger) -> int:
    missing = [p for p in args.paths if not p.exists()]
    if missing:
        logger.error(f"file not found: {', '.join(str(p) for p in missing)}")
        return EXIT_FATAL
    result = import_csv_files(args.paths, args.output, plan_id=args.plan_id)
    if result.output is not None:
        logger.info(f"wrote {result.total_rows} record(s) to {result.output}")
    _emit_summary(render_import_summary(result))
    return EXIT_FATAL if result.failed_files and not result.success_files else EXIT_SUCCESS


def _cmd_db_status(args, cfg, client, logger) -> int:
    session = DatabaseConnectionSession(client, Path(cfg.state_directory) / FORM_STATE_FILE)
    changes = {
        k: v
        for k, v in (
            ("server_name", args.server),
            ("database_name", args.database),
            ("authentication_type", args.auth),
            ("username", args.username),
        )
        if v is not None
    }
    if changes:
        session.update(**changes)
    session.password = os.getenv(ENV_DB_PASSWORD, "")

    if args.disconnect:
        ok = session.disconnect()
    elif args.test:
        result = session.test()
        ok = result is not None and result.success
        if result is not None:
            logger.info(f"test success={result.success} message={result.message or ''} "
                        f"version={result.sql_server_version or '-'} time_ms={result.response_time_ms}")
    elif args.configure:
        ok = session.save() is not None
    else:
        ok = session.refresh() is not None

    if session.error:
        logger.error(f"database: {session.error}")
    form = session.form
    log_summary(
        f"connected={str(session.is_connected).lower()} "
        f"server={form.server_name or '-'} database={form.database_name or '-'} "
        f"auth={form.authentication_type}"
    )
    return EXIT_SUCCESS if ok else EXIT_FALLBACK


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.debug(f"collation locale unavailable, using code-point order: {e}")

    # argv=[] must not fall back to sys.argv (pytest arguments would leak in)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    load_env_file(Path(".env"))
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "import-csv":
        return _cmd_import_csv(args, logger)

    error_log = ErrorLogBuffer()
    client = ApiClient(
        base_url=args.base_url or cfg.api.base_url,
        timeout=cfg.api.timeout_seconds,
        verify_tls=cfg.api.verify_tls,
    )
    try:
        with client:
            if args.command == "scenarios":
                return _cmd_scenarios(client, error_log)
            if args.command == "db-status":
                return _cmd_db_status(args, cfg, client, logger)

            with DataSourceResolver(
                client,
                retries=cfg.api.retries,
                error_log=error_log,
                fallback_enabled=cfg.fallback_enabled,
            ) as resolver:
                resolved = resolver.resolve(_query(args))
            logger.info(f"source={resolved.source_label} rows={len(resolved.data)}")

            handler = {"pivot": _cmd_pivot, "table": _cmd_table, "export": _cmd_export}[args.command]
            return handler(args, cfg, resolved, logger)
    except ValidationError as e:
        logger.error(f"validation: {e}")
        return EXIT_FATAL
    except ValueError as e:
        logger.error(f"{args.command}: {e}")
        return EXIT_FATAL
    except OSError as e:
        logger.error(f"io: {e}")
        return EXIT_FATAL
    finally:
        path = error_log.flush()
        if path is not None:
            logger.info(f"fetch errors written to {path}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
