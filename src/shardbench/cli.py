"""Command-line entry point: ``shardbench`` / ``python -m shardbench``.

Exit codes:
- 0: every phase completed and the full report was printed
- 1: configuration, connection or phase failure (partial report marked incomplete)
"""

from __future__ import annotations

import argparse
import sys
from typing import Any, Sequence

from shardbench._version import VERSION
from shardbench.backends import VALID_BACKENDS, create_backend
from shardbench.config.loader import CONFIG_PATH_ENV_VAR
from shardbench.config.settings import load_settings
from shardbench.errors import BenchmarkError, RunAborted
from shardbench.report import RunReport, render_records, render_text
from shardbench.runner import Runner
from shardbench.schema import VALID_ON_CONFLICT
from shardbench.util.logging import configure_cli_logging

SUCCESS_EXIT_CODE = 0
FAIL_EXIT_CODE = 1
VALID_FORMATS = ("text", "json")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shardbench",
        description=(
            "Compare a (topic, shard, message) primary key against a (topic, message) "
            "primary key with a secondary shard index."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument(
        "--config",
        default=None,
        help=f"TOML settings file layered over the packaged defaults (env: {CONFIG_PATH_ENV_VAR}).",
    )

    workload = parser.add_argument_group("workload")
    workload.add_argument("--topics", dest="num_topics", type=int, default=None, help="Number of topics.")
    workload.add_argument("--shards", dest="num_shards", type=int, default=None, help="Shard cardinality.")
    workload.add_argument(
        "--messages",
        dest="num_messages",
        type=int,
        default=None,
        help="Messages per topic.",
    )
    workload.add_argument(
        "--msg-id-range",
        dest="msg_id_range",
        type=int,
        default=None,
        help="Message ids are sampled from [1, N].",
    )
    workload.add_argument(
        "--lookup-batch-size",
        dest="lookup_batch_size",
        type=int,
        default=None,
        help="Number of workload keys used for point lookups.",
    )
    workload.add_argument(
        "--seed",
        dest="random_seed",
        default=None,
        help="Workload seed; 'random' draws a fresh one (recorded in the report).",
    )

    connection = parser.add_argument_group(
        "connection",
        "Postgres target; PGHOST, PGPORT, PGUSER, PGPASSWORD and PGDATABASE are honoured.",
    )
    connection.add_argument("--host", default=None)
    connection.add_argument("--port", type=int, default=None)
    connection.add_argument("--user", default=None)
    connection.add_argument("--dbname", default=None)
    connection.add_argument("--connect-timeout", dest="connect_timeout_seconds", type=int, default=None)

    run = parser.add_argument_group("run")
    run.add_argument("--backend", choices=sorted(VALID_BACKENDS), default=None)
    run.add_argument("--duckdb-path", default=None, help="DuckDB database file (default: in memory).")
    run.add_argument(
        "--on-conflict",
        choices=sorted(VALID_ON_CONFLICT),
        default=None,
        help="fail: duplicate primary keys abort the insert; skip: ON CONFLICT DO NOTHING.",
    )
    run.add_argument(
        "--drop-after",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Drop the variant tables once the run completes.",
    )
    parser.add_argument("--format", choices=VALID_FORMATS, default="text", help="Report format.")
    parser.add_argument("--log-level", default="WARNING", help="Log level for structured events on stderr.")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def build_overrides(args: argparse.Namespace) -> dict[str, dict[str, Any]]:
    return {
        "workload": {
            "num_topics": args.num_topics,
            "num_shards": args.num_shards,
            "num_messages": args.num_messages,
            "msg_id_range": args.msg_id_range,
            "lookup_batch_size": args.lookup_batch_size,
            "random_seed": args.random_seed,
        },
        "connection": {
            "host": args.host,
            "port": args.port,
            "user": args.user,
            "dbname": args.dbname,
            "connect_timeout_seconds": args.connect_timeout_seconds,
        },
        "run": {
            "backend": args.backend,
            "duckdb_path": args.duckdb_path,
            "on_conflict": args.on_conflict,
            "drop_after": args.drop_after,
        },
    }


def emit_report(report: RunReport, output_format: str, stream=None) -> None:
    stream = sys.stdout if stream is None else stream
    if output_format == "json":
        for line in render_records(report):
            print(line, file=stream, flush=True)
        return
    print(render_text(report), file=stream, flush=True)


def run(args: argparse.Namespace) -> int:
    settings = load_settings(config_path=args.config, overrides=build_overrides(args))
    with create_backend(settings) as backend:
        report = Runner(backend, settings).run()
    emit_report(report, args.format)
    return SUCCESS_EXIT_CODE


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_cli_logging(args.log_level)
    try:
        return run(args)
    except RunAborted as exc:
        emit_report(exc.report, args.format)
        print(f"shardbench: {exc}", file=sys.stderr, flush=True)
        return FAIL_EXIT_CODE
    except (BenchmarkError, ImportError) as exc:
        print(f"shardbench: {exc}", file=sys.stderr, flush=True)
        return FAIL_EXIT_CODE


if __name__ == "__main__":
    raise SystemExit(main())
