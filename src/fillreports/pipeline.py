# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Guilty file derivation for loaded bug reports."""

import logging
from dataclasses import dataclass
from typing import Literal

from fillreports.dashboard_client import DashboardClient, DashboardError
from fillreports.interpreter import (
    InterpreterFactory,
    ParsedReport,
    PlatformConfig,
    SymbolizeError,
)
from fillreports.model import BugReport

logger = logging.getLogger(__name__)

OutcomeKind = Literal["updated", "ineligible", "skipped", "failed"]


@dataclass(frozen=True)
class ProcessOutcome:
    """Represent the terminal state reached for one bug report.

    Only recoverable terminals are outcomes. A broken platform binding raises
    ``InterpreterInitError`` instead and aborts the run.

    Attributes:
        bug_id: Dashboard bug identifier.
        kind: Terminal state category.
        reason: One-line human readable reason, also written to the log.
        guilty_file: Derived guilty file, when one was extracted.
    """

    bug_id: str
    kind: OutcomeKind
    reason: str
    guilty_file: str | None = None


def substitute_symbolized_report(parsed: ParsedReport, report: BugReport) -> None:
    """Replace parsed crash text with the dashboard's symbolized report.

    Symbolization normally needs the kernel object file of the crashed build,
    which is rarely available here. The dashboard already stores a symbolized
    report, so it is handed to symbolization as if it were raw crash text.
    This only works while the interpreter accepts pre-symbolized text and may
    silently yield worse results if the two formats drift apart.

    Args:
        parsed: Report returned by the interpreter's parse step.
        report: Bug report the parsed report was derived from.
    """
    parsed.raw_crash_text = report.symbolized_report


class ReportPipeline:
    """Derive and store missing guilty files, one bug report at a time."""

    def __init__(
        self,
        client: DashboardClient,
        interpreter_factory: InterpreterFactory,
        dry_run: bool = False,
    ) -> None:
        """Initialize the pipeline.

        Args:
            client: Dashboard client used to store results.
            interpreter_factory: Builds a crash interpreter for a platform.
            dry_run: Derive guilty files without storing them.
        """
        self._client = client
        self._interpreter_factory = interpreter_factory
        self._dry_run = dry_run

    def process(self, report: BugReport) -> ProcessOutcome:
        """Run the derivation steps for one bug report.

        Args:
            report: Loaded bug report.

        Returns:
            Terminal outcome for the report.

        Raises:
            InterpreterInitError: If no interpreter can be built for the
                report's platform.
        """
        if report.has_guilty_files:
            return self._finish(report, "ineligible", "already has guilty files")
        if not report.is_open:
            return self._finish(report, "ineligible", "status is not open")

        platform = PlatformConfig(
            target_os=report.target_os, target_arch=report.target_arch
        )
        interpreter = self._interpreter_factory(platform)

        parsed = interpreter.parse(report.raw_log)
        if parsed is None:
            return self._finish(report, "skipped", "no crash is detected")

        substitute_symbolized_report(parsed, report)
        try:
            interpreter.symbolize(parsed)
        except SymbolizeError as exc:
            return self._finish(report, "failed", f"symbolize failed: {exc}")

        guilty_file = parsed.guilty_file
        if not guilty_file:
            return self._finish(report, "skipped", "no guilty files extracted")

        if self._dry_run:
            return self._finish(
                report,
                "updated",
                f"dry run, would set guilty file {guilty_file}",
                guilty_file=guilty_file,
            )
        try:
            self._client.persist_guilty_files(
                bug_id=report.bug_id,
                crash_id=report.crash_id,
                guilty_files=[guilty_file],
            )
        except DashboardError as exc:
            return self._finish(
                report, "failed", f"failed to save: {exc}", guilty_file=guilty_file
            )
        return self._finish(
            report, "updated", f"updated, guilty file {guilty_file}", guilty_file
        )

    def _finish(
        self,
        report: BugReport,
        kind: OutcomeKind,
        reason: str,
        guilty_file: str | None = None,
    ) -> ProcessOutcome:
        """Log a terminal transition and build its outcome."""
        level = logging.WARNING if kind == "failed" else logging.INFO
        logger.log(level, "%s: %s", report.bug_id, reason)
        return ProcessOutcome(
            bug_id=report.bug_id, kind=kind, reason=reason, guilty_file=guilty_file
        )
