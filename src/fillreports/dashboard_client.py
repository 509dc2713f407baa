# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Dashboard client abstractions."""

from typing import Protocol

from fillreports.model import BugReport


class DashboardError(RuntimeError):
    """Represent a dashboard request failure."""


class DashboardClient(Protocol):
    """Define the dashboard operations used to fill missing report elements."""

    def list_open_ids(self) -> list[str]:
        """List identifiers of all open bugs.

        Returns:
            Bug identifiers in dashboard order.

        Raises:
            DashboardError: If the query fails.
        """

    def fetch_record(self, bug_id: str) -> BugReport:
        """Load the full bug report for one bug.

        Args:
            bug_id: Dashboard bug identifier.

        Returns:
            Loaded bug report. A report with an empty ``bug_id`` means the bug
            does not exist.

        Raises:
            DashboardError: If the request fails or the response is malformed.
        """

    def persist_guilty_files(
        self, bug_id: str, crash_id: int, guilty_files: list[str]
    ) -> None:
        """Store derived guilty files for one bug.

        Re-sending the same value for an already updated bug must not fail.

        Args:
            bug_id: Dashboard bug identifier.
            crash_id: Crash reference the files were derived from.
            guilty_files: Derived guilty file paths.

        Raises:
            DashboardError: If the update is rejected or the request fails.
        """

    def close(self) -> None:
        """Release client resources."""
