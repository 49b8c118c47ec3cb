#!/usr/bin/env python3
"""
sql-compat CLI

Validates MyBatis mapper SQL against an origin and a target PostgreSQL
database.

Usage:
    # Set connections via environment variables (or a .env file)
    export ORIGIN_DB_CONNECTION='postgresql://localhost:5432/app'
    export TARGET_DB_CONNECTION='postgresql://localhost:5433/app'

    # Analyze-only (EXPLAIN) run over the default mapper directory
    sql-compat

    # Explicit directories and patterns, executing statements for real
    sql-compat --mapper-dir app/src/main/resources --include "**/*Mapper.xml" --execute

Exit codes:
    0  all statements passed
    1  at least one statement failed
    2  configuration, scan or connection pool error
    130 interrupted
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import DEFAULT_REPORT_PATH, ORIGIN_LABEL, TARGET_LABEL, RunConfig
from .display import Display
from .engine import DEFAULT_STATEMENT_TIMEOUT_SECONDS, DEFAULT_THREAD_COUNT, DatabaseTarget
from .error_classifier import ErrorClassifier
from .errors import ConfigurationError, MapperScanError, PoolCreationError, ValidationInterrupted
from .runner import RunOutcome, run


EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_ERROR = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sql-compat",
        description="Validate MyBatis mapper SQL against origin and target databases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Connections from the environment
  export ORIGIN_DB_CONNECTION='postgresql://localhost:5432/app'
  export TARGET_DB_CONNECTION='postgresql://localhost:5433/app'
  %(prog)s

  # Explicit connections and mapper directory
  %(prog)s --origin-db postgresql://old/app --target-db postgresql://new/app \\
           --mapper-dir src/main/resources --threads 8
        """
    )

    # Database connections (fall back to ORIGIN_DB_* / TARGET_DB_* env vars)
    parser.add_argument('--origin-db', help='Origin database connection string (default: $ORIGIN_DB_CONNECTION)')
    parser.add_argument('--origin-user', help='Origin database user (default: $ORIGIN_DB_USER)')
    parser.add_argument('--origin-password', help='Origin database password (default: $ORIGIN_DB_PASSWORD)')
    parser.add_argument('--target-db', help='Target database connection string (default: $TARGET_DB_CONNECTION)')
    parser.add_argument('--target-user', help='Target database user (default: $TARGET_DB_USER)')
    parser.add_argument('--target-password', help='Target database password (default: $TARGET_DB_PASSWORD)')

    # Mapper discovery
    parser.add_argument('--mapper-dir', action='append', dest='mapper_directories',
                        help='Directory to scan for mappers (repeatable, default: src/main/resources)')
    parser.add_argument('--include', action='append', dest='includes',
                        help='Include pattern (repeatable, default: **/*Mapper.xml)')
    parser.add_argument('--exclude', action='append', dest='excludes',
                        help='Exclude pattern (repeatable)')

    # Validation
    parser.add_argument('--statement-timeout', type=int, default=DEFAULT_STATEMENT_TIMEOUT_SECONDS,
                        help=f'Per-statement timeout in seconds (default: {DEFAULT_STATEMENT_TIMEOUT_SECONDS})')
    parser.add_argument('--execute', action='store_true',
                        help='Execute statements inside a rolled-back transaction instead of EXPLAIN')
    parser.add_argument('--threads', type=int, default=DEFAULT_THREAD_COUNT,
                        help=f'Concurrent statements per database (default: {DEFAULT_THREAD_COUNT})')
    parser.add_argument('--report', default=DEFAULT_REPORT_PATH,
                        help=f'JSON report path, "" to disable (default: {DEFAULT_REPORT_PATH})')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log every step')

    return parser


def _override_target(current: Optional[DatabaseTarget], label: str, dsn, user, password) -> Optional[DatabaseTarget]:
    dsn = dsn or (current.dsn if current else None)
    if not dsn:
        return None
    return DatabaseTarget(
        label=label,
        dsn=dsn,
        user=user if user is not None else (current.user if current else None),
        password=password if password is not None else (current.password if current else None),
    )


def config_from_args(args: argparse.Namespace) -> RunConfig:
    config = RunConfig.from_env(
        mapper_directories=args.mapper_directories,
        includes=args.includes,
        excludes=args.excludes,
        statement_timeout_seconds=args.statement_timeout,
        execute_statements=args.execute,
        thread_count=args.threads,
        report_path=args.report,
    )
    config.origin = _override_target(config.origin, ORIGIN_LABEL, args.origin_db, args.origin_user, args.origin_password)
    config.target = _override_target(config.target, TARGET_LABEL, args.target_db, args.target_user, args.target_password)
    return config.validate()


def print_outcome(outcome: RunOutcome, display: Display):
    """Print per-statement lines and the per-database summary."""
    classifier = ErrorClassifier()

    display.subheader("Statements")
    for result in outcome.results:
        statement = result.statement
        text = f"{statement.full_id} ({statement.kind.value}) [{result.database_label}]"
        detail = None
        if not result.success:
            detail = f"{classifier.classify(result.error_message).category.value}: {result.error_message}"
        display.result_line(result.success, text, detail)

    display.subheader("Summary")
    for label, summary in ((ORIGIN_LABEL, outcome.origin), (TARGET_LABEL, outcome.target)):
        if summary is None:
            display.metric(label, "skipped")
        else:
            display.metric(label, f"{summary.failures} failure(s) out of {summary.total}",
                           "(passed)" if summary.passed else None)
    if outcome.report_path:
        display.metric("report", str(outcome.report_path))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    display = Display()

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        display.error(str(e))
        return EXIT_ERROR

    mode = "execute" if config.execute_statements else "analyze-only"
    display.header(f"SQL compatibility check ({mode})")

    try:
        if args.verbose:
            outcome = run(config)
        else:
            with display.spinner("Scanning mappers and validating statements..."):
                outcome = run(config)
    except MapperScanError as e:
        display.error(f"Failed to scan mapper XML files: {e}")
        if e.__cause__ is not None:
            display.error(f"Cause: {e.__cause__}")
        return EXIT_ERROR
    except PoolCreationError as e:
        display.error(str(e))
        return EXIT_ERROR
    except (ValidationInterrupted, KeyboardInterrupt) as e:
        display.error(f"Interrupted: {e}" if str(e) else "Interrupted")
        return EXIT_INTERRUPTED

    if not outcome.statements:
        display.warning("No mapper statements found. Check --mapper-dir/--include/--exclude.")
        return EXIT_OK

    print_outcome(outcome, display)
    display.newline()
    if not outcome.passed:
        display.error(f"Validation failed for {outcome.failures} statement(s)")
        if outcome.target_skipped:
            display.warning("Target database was not validated because the origin database had failures.")
        return EXIT_FAILURES

    display.success(f"SQL compatibility validation passed for {len(outcome.results)} statement(s)")
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
