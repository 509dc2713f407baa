# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Crash interpreter abstractions."""

from dataclasses import dataclass
from typing import Callable, Protocol


class InterpreterInitError(RuntimeError):
    """Represent a failure to bind an interpreter to a platform.

    This is a configuration-level defect and aborts the whole run.
    """


class SymbolizeError(RuntimeError):
    """Represent a per-report symbolization failure."""


@dataclass(frozen=True)
class PlatformConfig:
    """Describe the platform an interpreter is bound to."""

    target_os: str
    target_arch: str


@dataclass
class ParsedReport:
    """Represent a crash report extracted from a console log.

    Attributes:
        title: One-line crash description.
        raw_crash_text: Crash text handed to symbolization.
        output: Full console output the report was parsed from.
        guilty_file: Source file blamed for the crash; empty until derived.
    """

    title: str
    raw_crash_text: str
    output: str
    guilty_file: str = ""


class CrashInterpreter(Protocol):
    """Define crash parsing and symbolization for one platform."""

    def parse(self, raw_log: str) -> ParsedReport | None:
        """Extract a crash report from a console log.

        Args:
            raw_log: Console output captured around the crash.

        Returns:
            Parsed report, or ``None`` when no crash is recognized.
        """

    def symbolize(self, report: ParsedReport) -> None:
        """Resolve source locations and fill ``report.guilty_file`` in place.

        Args:
            report: Report to symbolize.

        Raises:
            SymbolizeError: If the report cannot be symbolized.
        """


InterpreterFactory = Callable[[PlatformConfig], CrashInterpreter]
