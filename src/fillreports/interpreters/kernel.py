# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Kernel console log interpreter."""

import logging
import re

from fillreports.interpreter import (
    InterpreterInitError,
    ParsedReport,
    PlatformConfig,
    SymbolizeError,
)

logger = logging.getLogger(__name__)

KNOWN_TARGETS: dict[str, frozenset[str]] = {
    "linux": frozenset(
        {"amd64", "386", "arm64", "arm", "mips64le", "ppc64le", "riscv64", "s390x"}
    ),
    "gvisor": frozenset({"amd64", "arm64"}),
    "freebsd": frozenset({"amd64", "386", "arm64", "riscv64"}),
    "netbsd": frozenset({"amd64", "arm64"}),
    "openbsd": frozenset({"amd64"}),
    "fuchsia": frozenset({"amd64", "arm64"}),
    "darwin": frozenset({"amd64"}),
    "windows": frozenset({"amd64"}),
    "trusty": frozenset({"arm"}),
}

LINUX_OOPS_MARKERS: tuple[str, ...] = (
    "BUG:",
    "WARNING:",
    "INFO:",
    "KASAN:",
    "KMSAN:",
    "UBSAN:",
    "general protection fault",
    "kernel BUG at",
    "Unable to handle kernel",
    "Kernel panic",
    "divide error:",
    "invalid opcode:",
    "stack segment:",
    "unregister_netdevice: waiting for",
)
BSD_OOPS_MARKERS: tuple[str, ...] = (
    "panic:",
    "Fatal trap",
    "lock order reversal",
    "uvm_fault",
    "UBSan:",
    "KASAN:",
)
FUCHSIA_OOPS_MARKERS: tuple[str, ...] = (
    "ZIRCON KERNEL PANIC",
    "ASSERT FAILED",
    "Crashlog from previous boot",
    "panic:",
)

OOPS_MARKERS_BY_OS: dict[str, tuple[str, ...]] = {
    "linux": LINUX_OOPS_MARKERS,
    "gvisor": LINUX_OOPS_MARKERS + ("panic:", "fatal error:"),
    "freebsd": BSD_OOPS_MARKERS,
    "netbsd": BSD_OOPS_MARKERS,
    "openbsd": BSD_OOPS_MARKERS,
    "fuchsia": FUCHSIA_OOPS_MARKERS,
}
DEFAULT_OOPS_MARKERS: tuple[str, ...] = LINUX_OOPS_MARKERS + ("panic:",)

# Files that show up in nearly every stack trace and never explain a crash.
GUILTY_FILE_IGNORES: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r".*\.h$",
        r"^lib/.*",
        r"^virt/lib/.*",
        r"^mm/kasan/.*",
        r"^mm/kmsan/.*",
        r"^kernel/kcov\.c$",
        r"^mm/sl.b\.c$",
        r"^mm/filemap\.c$",
        r"^mm/memory\.c$",
        r"^mm/percpu.*",
        r"^mm/vmalloc\.c$",
        r"^mm/page_alloc\.c$",
        r"^mm/mempool\.c$",
        r"^mm/util\.c$",
        r"^kernel/rcu/.*",
        r"^kernel/locking/.*",
        r"^kernel/panic\.c$",
        r"^kernel/printk/printk.*\.c$",
        r"^kernel/sched/.*\.c$",
        r"^kernel/time/timer\.c$",
        r"^kernel/workqueue\.c$",
        r"^arch/.*/kernel/traps\.c$",
        r"^arch/.*/mm/fault\.c$",
        r"^arch/.*/mm/physaddr\.c$",
        r"^net/core/dev\.c$",
        r"^net/core/sock\.c$",
        r"^net/core/skbuff\.c$",
        r"^fs/proc/generic\.c$",
        r"^drivers/usb/core/urb\.c$",
        r"^drivers/usb/core/hcd\.c$",
    )
)

_CONSOLE_PREFIX_RE = re.compile(r"^(?:\s*\[[^\]]*\])*\s*")
# Any "dir/file.ext:line" reference, including RIP lines and report headers.
_SOURCE_LOCATION_RE = re.compile(
    r"(?:^|(?<=[\s(:]))"
    r"(?P<file>(?:\./)?[\w+-]+(?:/[\w.+-]+)+\.(?:c|h|S|s|rs|cc|cpp)):\d+"
)


class KernelLogInterpreter:
    """Parse kernel console logs and blame a source file from stack frames."""

    def __init__(self, platform: PlatformConfig) -> None:
        """Bind interpreter to a platform.

        Args:
            platform: Target OS and architecture.

        Raises:
            InterpreterInitError: If the platform is not a known target.
        """
        arches = KNOWN_TARGETS.get(platform.target_os)
        if arches is None or platform.target_arch not in arches:
            logger.warning(
                f"Unknown target platform (os={platform.target_os} "
                f"arch={platform.target_arch})"
            )
            raise InterpreterInitError(
                f"unknown target {platform.target_os}/{platform.target_arch}"
            )
        self._platform = platform
        self._markers = OOPS_MARKERS_BY_OS.get(
            platform.target_os, DEFAULT_OOPS_MARKERS
        )

    def parse(self, raw_log: str) -> ParsedReport | None:
        """Find the first crash in a console log.

        Args:
            raw_log: Console output captured around the crash.

        Returns:
            Parsed report starting at the first oops line, or ``None`` when the
            log contains no known oops marker.
        """
        lines = raw_log.splitlines()
        for index, line in enumerate(lines):
            content = strip_console_prefix(line)
            if any(content.startswith(marker) for marker in self._markers):
                crash_text = "\n".join(lines[index:])
                return ParsedReport(
                    title=content.strip(),
                    raw_crash_text=crash_text,
                    output=raw_log,
                )
        return None

    def symbolize(self, report: ParsedReport) -> None:
        """Fill ``report.guilty_file`` from the frames in the crash text.

        The crash text is expected to already carry source locations; frames
        without them are ignored.

        Args:
            report: Report to symbolize in place.

        Raises:
            SymbolizeError: If the report has no crash text.
        """
        if not report.raw_crash_text.strip():
            raise SymbolizeError("report text is empty")
        report.guilty_file = extract_guilty_file(report.raw_crash_text)


def new_interpreter(platform: PlatformConfig) -> KernelLogInterpreter:
    return KernelLogInterpreter(platform)


def strip_console_prefix(line: str) -> str:
    """Drop timestamp and context prefixes like ``[   1.23][ T42]``."""
    return _CONSOLE_PREFIX_RE.sub("", line, count=1)


def extract_guilty_file(crash_text: str) -> str:
    """Return the first non-generic source file referenced in a crash text.

    Locations are taken from anywhere on a line, so report headers and
    ``RIP:`` lines count before the call trace.

    Args:
        crash_text: Symbolized crash text.

    Returns:
        Guilty file path, or an empty string when no location qualifies.
    """
    for line in crash_text.splitlines():
        content = strip_console_prefix(line)
        if content.startswith("?"):
            # Unreliable frame.
            continue
        for match in _SOURCE_LOCATION_RE.finditer(content):
            file_path = match.group("file").removeprefix("./")
            if not _is_ignored(file_path):
                return file_path
    return ""


def _is_ignored(file_path: str) -> bool:
    return any(pattern.match(file_path) for pattern in GUILTY_FILE_IGNORES)
