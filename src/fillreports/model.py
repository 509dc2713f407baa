# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Domain models for dashboard bug reports."""

from dataclasses import dataclass
from typing import Literal

BugStatus = Literal["open", "other"]


@dataclass(frozen=True)
class BugReport:
    """Represent one bug report snapshot loaded from the dashboard.

    Attributes:
        bug_id: Dashboard bug identifier. Empty when the bug was not found.
        target_os: Operating system the crash was observed on.
        target_arch: Architecture the crash was observed on.
        raw_log: Original console log of the crash.
        symbolized_report: Previously computed symbolized report text.
        status: Bug status; only ``open`` bugs are processed.
        guilty_files: Derived guilty files, ``None`` when never derived.
        crash_id: Crash reference passed back unchanged on update.
    """

    bug_id: str
    target_os: str
    target_arch: str
    raw_log: str
    symbolized_report: str
    status: BugStatus
    guilty_files: tuple[str, ...] | None = None
    crash_id: int = 0

    @property
    def has_guilty_files(self) -> bool:
        return bool(self.guilty_files)

    @property
    def is_open(self) -> bool:
        return self.status == "open"
