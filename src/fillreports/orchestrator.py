# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Run orchestration for filling missing report elements."""

import logging
from contextlib import closing
from dataclasses import dataclass, field

from fillreports.dashboard_client import DashboardClient
from fillreports.fetch_pool import RecordFetchPool
from fillreports.pipeline import ProcessOutcome, ReportPipeline

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Represent aggregate results of one run."""

    total_ids: int = 0
    fetched: int = 0
    updated: int = 0
    ineligible: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: list[ProcessOutcome] = field(default_factory=list)

    def add(self, outcome: ProcessOutcome) -> None:
        self.fetched += 1
        setattr(self, outcome.kind, getattr(self, outcome.kind) + 1)
        self.outcomes.append(outcome)


class FillReportsRunner:
    """Load open bugs concurrently and process them one at a time."""

    def __init__(
        self,
        client: DashboardClient,
        pool: RecordFetchPool,
        pipeline: ReportPipeline,
    ) -> None:
        """Initialize the runner.

        Args:
            client: Dashboard client used to list open bugs.
            pool: Fetch pool loading bug reports.
            pipeline: Pipeline processing each loaded report.
        """
        self._client = client
        self._pool = pool
        self._pipeline = pipeline

    def run(self) -> RunSummary:
        """Process every open bug on the dashboard.

        Reports are processed sequentially in the calling thread, so store
        calls never overlap each other even while fetches are in flight.

        Returns:
            Run summary.

        Raises:
            DashboardError: If the open bug list cannot be loaded.
            InterpreterInitError: If a platform cannot be bound to an
                interpreter.
        """
        bug_ids = self._client.list_open_ids()
        logger.info("fill_reports_started total_ids=%s", len(bug_ids))
        summary = RunSummary(total_ids=len(bug_ids))
        with closing(self._pool.load(bug_ids)) as reports:
            for report in reports:
                summary.add(self._pipeline.process(report))
        logger.info(
            "fill_reports_completed total_ids=%s fetched=%s updated=%s "
            "ineligible=%s skipped=%s failed=%s",
            summary.total_ids,
            summary.fetched,
            summary.updated,
            summary.ineligible,
            summary.skipped,
            summary.failed,
        )
        return summary
