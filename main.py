"""
main.py
-------
Command-line entry point: reconcile every table of the source database into
the destination database and print a summary.

Exit codes:
    0  the run completed (individual tables may still have failed; see summary)
    1  a database could not be reached, or the table list could not be read,
       so no table was synced
    2  the configuration is invalid
"""
from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from config import ConfigError, SyncConfig, load_config
from logger import configure_logging, get_logger
from syncer.database import DatabaseError
from syncer.orchestrator import sync_databases

EXIT_OK = 0
EXIT_CONNECTION_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mysql-table-sync",
        description="Copy missing rows and update changed rows from a source "
                    "MySQL database into a destination database.",
    )
    parser.add_argument("--env-file", help="Path to a .env file with SYNC_* settings.")
    parser.add_argument("--batch-size", type=int, help="Rows per batch (default 1000).")
    parser.add_argument(
        "--skip-table", action="append", default=[], metavar="TABLE",
        help="Table to leave out of the run. May be repeated.",
    )
    parser.add_argument(
        "--batch-delay-ms", type=int,
        help="Pause after each full batch, in milliseconds (default 50).",
    )
    parser.add_argument(
        "--allow-key-mismatch", action="store_true", default=None,
        help="Use the source key columns when the destination's differ "
             "instead of failing the table.",
    )
    parser.add_argument("--report-json", help="Also write the summary as JSON to this path.")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR.")
    return parser


def config_from_args(args: argparse.Namespace) -> SyncConfig:
    overrides = {
        "batch_size": args.batch_size,
        "batch_delay_ms": args.batch_delay_ms,
        "allow_key_mismatch": args.allow_key_mismatch,
        "log_level": args.log_level.upper() if args.log_level else None,
        "report_file": Path(args.report_json) if args.report_json else None,
    }
    config = load_config(env_file=args.env_file, **overrides)
    if args.skip_table:
        config = replace(config, skip_tables=config.skip_tables | frozenset(args.skip_table))
    return config


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = config_from_args(args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(config)
    log = get_logger(__name__)
    log.info(
        "Syncing %s → %s (batch size %d).",
        config.source.display_name, config.destination.display_name, config.batch_size,
    )

    try:
        summary = sync_databases(config)
    except DatabaseError as exc:
        # connect, table listing or foreign key toggling; no table was processed
        log.error("Sync failed: %s", exc)
        return EXIT_CONNECTION_FAILED

    print(summary.format_text())
    if config.report_file:
        summary.write_json(config.report_file)
        log.info("JSON report written to %s", config.report_file)
    log.info("Database sync complete.")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
