import sys
import threading
from pathlib import Path

import pytest


def _add_src_to_path() -> None:
    root = Path(__file__).resolve().parents[1]
    src_path = root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


_add_src_to_path()

from fillreports.dashboard_client import DashboardError  # noqa: E402
from fillreports.interpreter import (  # noqa: E402
    ParsedReport,
    PlatformConfig,
    SymbolizeError,
)
from fillreports.model import BugReport  # noqa: E402


def make_report(
    bug_id: str,
    *,
    status: str = "open",
    guilty_files: tuple[str, ...] | None = None,
    raw_log: str = "BUG: something broke",
    symbolized_report: str = "symbolized",
    crash_id: int = 1,
) -> BugReport:
    return BugReport(
        bug_id=bug_id,
        target_os="linux",
        target_arch="amd64",
        raw_log=raw_log,
        symbolized_report=symbolized_report,
        status=status,  # type: ignore[arg-type]
        guilty_files=guilty_files,
        crash_id=crash_id,
    )


class RecordingDashboard:
    """Serve canned bug reports and record every call."""

    def __init__(
        self,
        reports: dict[str, BugReport] | None = None,
        fetch_errors: set[str] | None = None,
        persist_errors: set[str] | None = None,
    ) -> None:
        self.reports = reports or {}
        self.fetch_errors = fetch_errors or set()
        self.persist_errors = persist_errors or set()
        self.fetched: list[str] = []
        self.persisted: list[tuple[str, int, list[str]]] = []
        self.closed = False
        self._lock = threading.Lock()

    def list_open_ids(self) -> list[str]:
        return list(self.reports) + sorted(self.fetch_errors - set(self.reports))

    def fetch_record(self, bug_id: str) -> BugReport:
        with self._lock:
            self.fetched.append(bug_id)
        if bug_id in self.fetch_errors:
            raise DashboardError("connection reset")
        return self.reports.get(bug_id) or make_report("")

    def persist_guilty_files(
        self, bug_id: str, crash_id: int, guilty_files: list[str]
    ) -> None:
        with self._lock:
            self.persisted.append((bug_id, crash_id, guilty_files))
        if bug_id in self.persist_errors:
            raise DashboardError("update rejected")

    def close(self) -> None:
        self.closed = True


class ScriptedInterpreter:
    """Return scripted parse and symbolize results keyed by raw log."""

    def __init__(
        self,
        guilty_files: dict[str, str],
        calls: list[tuple[str, str]],
        unparsable: set[str],
        symbolize_errors: set[str],
    ) -> None:
        self._guilty_files = guilty_files
        self._calls = calls
        self._unparsable = unparsable
        self._symbolize_errors = symbolize_errors

    def parse(self, raw_log: str) -> ParsedReport | None:
        self._calls.append(("parse", raw_log))
        if raw_log in self._unparsable:
            return None
        return ParsedReport(title=raw_log, raw_crash_text=raw_log, output=raw_log)

    def symbolize(self, report: ParsedReport) -> None:
        self._calls.append(("symbolize", report.raw_crash_text))
        if report.title in self._symbolize_errors:
            raise SymbolizeError("missing debug info")
        report.guilty_file = self._guilty_files.get(report.title, "")


class ScriptedInterpreterFactory:
    """Build scripted interpreters and record platforms and calls."""

    def __init__(
        self,
        guilty_files: dict[str, str] | None = None,
        unparsable: set[str] | None = None,
        symbolize_errors: set[str] | None = None,
    ) -> None:
        self.guilty_files = guilty_files or {}
        self.unparsable = unparsable or set()
        self.symbolize_errors = symbolize_errors or set()
        self.platforms: list[PlatformConfig] = []
        self.calls: list[tuple[str, str]] = []

    def __call__(self, platform: PlatformConfig) -> ScriptedInterpreter:
        self.platforms.append(platform)
        return ScriptedInterpreter(
            guilty_files=self.guilty_files,
            calls=self.calls,
            unparsable=self.unparsable,
            symbolize_errors=self.symbolize_errors,
        )


@pytest.fixture
def interpreter_factory() -> ScriptedInterpreterFactory:
    return ScriptedInterpreterFactory()
