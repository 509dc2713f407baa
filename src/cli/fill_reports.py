# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Fill missing guilty files of open dashboard bugs."""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from fillreports.dashboard import DEFAULT_DASHBOARD_URL, HTTPDashboardClient
from fillreports.dashboard_client import DashboardClient, DashboardError
from fillreports.fetch_pool import (
    DEFAULT_LOG_STEP,
    DEFAULT_MAX_WORKERS,
    RecordFetchPool,
)
from fillreports.interpreter import InterpreterFactory, InterpreterInitError
from fillreports.interpreters import new_interpreter
from fillreports.orchestrator import FillReportsRunner, RunSummary
from fillreports.pipeline import ReportPipeline

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser.

    Returns:
        Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(prog="fill-reports")
    parser.add_argument(
        "--dashboard", default=DEFAULT_DASHBOARD_URL, help="Dashboard address."
    )
    parser.add_argument("--client", required=True, help="Name of the API client.")
    parser.add_argument("--key", default="", help="API key.")
    parser.add_argument(
        "--threads",
        type=int,
        default=DEFAULT_MAX_WORKERS,
        help="Number of concurrent bug loading workers.",
    )
    parser.add_argument(
        "--log-step",
        type=int,
        default=DEFAULT_LOG_STEP,
        help="Emit a progress line every N dispatched bugs.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Derive guilty files without uploading them.",
    )
    parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Run summary output format.",
    )
    parser.add_argument(
        "--output",
        required=False,
        help="Optional output file path for raw JSON when --format json is used.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logs.")
    return parser


def run(argv: list[str], stdout: TextIO, stderr: TextIO) -> int:
    """Run the fill-reports command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if args.threads <= 0:
        logger.warning(f"Invalid thread count (threads={args.threads})")
        stderr.write("threads must be > 0\n")
        return 2
    if args.log_step <= 0:
        logger.warning(f"Invalid log step (log_step={args.log_step})")
        stderr.write("log-step must be > 0\n")
        return 2

    try:
        client = build_dashboard_client(
            client_name=args.client, address=args.dashboard, key=args.key
        )
    except DashboardError as exc:
        logger.warning(f"Dashboard client setup failed (error={exc})")
        stderr.write(f"dashapi failed: {exc}\n")
        return 2

    runner = FillReportsRunner(
        client=client,
        pool=RecordFetchPool(
            client=client, max_workers=args.threads, log_step=args.log_step
        ),
        pipeline=ReportPipeline(
            client=client,
            interpreter_factory=build_interpreter_factory(),
            dry_run=args.dry_run,
        ),
    )
    try:
        summary = runner.run()
    except DashboardError as exc:
        logger.warning(f"Bug list query failed (error={exc})")
        stderr.write(f"bug list query failed: {exc}\n")
        return 1
    except InterpreterInitError as exc:
        logger.warning(f"Interpreter setup failed (error={exc})")
        stderr.write(f"failed to create a reporter: {exc}\n")
        return 1
    finally:
        client.close()

    if args.format == "json":
        if args.output:
            try:
                _write_json_file(summary=summary, output_path=Path(args.output))
            except OSError as exc:
                logger.warning(
                    f"Failed to write JSON output file (output_path={args.output} error={exc})"
                )
                stderr.write(f"Failed to write JSON output file: {args.output}\n")
                return 2
        else:
            _write_json(summary=summary, stdout=stdout)
    else:
        _write_table(summary=summary, stdout=stdout)
    return 0


def build_dashboard_client(
    client_name: str, address: str, key: str
) -> DashboardClient:
    """Create the dashboard client.

    Args:
        client_name: API client name.
        address: Dashboard base URL.
        key: API key.

    Returns:
        Configured dashboard client.

    Raises:
        DashboardError: If the client configuration is invalid.
    """
    return HTTPDashboardClient(client_name=client_name, address=address, key=key)


def build_interpreter_factory() -> InterpreterFactory:
    return new_interpreter


def _write_json(summary: RunSummary, stdout: TextIO) -> None:
    """Write run summary in JSON format.

    Args:
        summary: Run summary.
        stdout: Standard output stream.
    """
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    console.print(
        json.dumps(asdict(summary), indent=2, sort_keys=True),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def _write_json_file(summary: RunSummary, output_path: Path) -> None:
    """Write raw JSON run summary to an output file.

    Args:
        summary: Run summary.
        output_path: Target file path.

    Raises:
        OSError: If directory creation or file writing fails.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(asdict(summary), indent=2, sort_keys=True),
        encoding="utf-8",
    )


def _write_table(summary: RunSummary, stdout: TextIO) -> None:
    """Write per-bug outcomes and totals as tables.

    Args:
        summary: Run summary.
        stdout: Standard output stream.
    """
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    table = Table(show_header=True, expand=True)
    table.add_column("bug_id", ratio=2, overflow="fold")
    table.add_column("outcome", ratio=1, overflow="fold")
    table.add_column("guilty_file", ratio=2, overflow="fold")
    table.add_column("reason", ratio=4, overflow="fold")
    for outcome in summary.outcomes:
        table.add_row(
            outcome.bug_id, outcome.kind, outcome.guilty_file or "", outcome.reason
        )
    console.print(table)
    console.print(
        f"total_ids={summary.total_ids} fetched={summary.fetched} "
        f"updated={summary.updated} ineligible={summary.ineligible} "
        f"skipped={summary.skipped} failed={summary.failed}",
        markup=False,
        highlight=False,
    )


def main() -> None:
    """Run the CLI application and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
