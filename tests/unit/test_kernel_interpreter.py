# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for the kernel console log interpreter."""

import pytest

from conftest import RecordingDashboard, make_report
from fillreports.interpreter import (
    InterpreterInitError,
    ParsedReport,
    PlatformConfig,
    SymbolizeError,
)
from fillreports.interpreters import KernelLogInterpreter, new_interpreter
from fillreports.interpreters.kernel import extract_guilty_file, strip_console_prefix
from fillreports.pipeline import ReportPipeline

LINUX = PlatformConfig(target_os="linux", target_arch="amd64")

CONSOLE_LOG = "\n".join(
    [
        "[   10.100000][ T1] syzkaller login: executing program",
        "[   12.345678][ T5021] ==================================================",
        "[   12.345679][ T5021] BUG: KASAN: use-after-free in ext4_xattr_set_entry",
        "[   12.345680][ T5021] Read of size 4 at addr ffff88807b1c0000",
        "[   12.345681][ T5021] Call Trace:",
        "[   12.345682][ T5021]  ext4_xattr_set_entry+0x1a/0x30",
    ]
)

SYMBOLIZED_REPORT = "\n".join(
    [
        "BUG: KASAN: use-after-free in ext4_xattr_set_entry+0x1a/0x30 fs/ext4/xattr.c:1586",
        "Read of size 4 at addr ffff88807b1c0000 by task syz-executor/5021",
        "",
        "CPU: 0 PID: 5021 Comm: syz-executor Not tainted 6.6.0-syzkaller",
        "Hardware name: Google Google Compute Engine/Google Compute Engine",
        "Call Trace:",
        " <TASK>",
        " __dump_stack lib/dump_stack.c:88 [inline]",
        " dump_stack_lvl+0xd9/0x1b0 lib/dump_stack.c:106",
        " print_report mm/kasan/report.c:364 [inline]",
        " kasan_report+0xd9/0x110 mm/kasan/report.c:588",
        " ? ext4_xattr_get+0x10/0x20 fs/ext4/inode.c:10",
        " ext4_xattr_set_entry+0x1a/0x30 fs/ext4/xattr.c:1586",
        " ext4_xattr_set_handle+0x5b0/0x1390 fs/ext4/xattr.c:2364",
        " </TASK>",
    ]
)


def test_kernel_001_unknown_platform_fails_initialization() -> None:
    with pytest.raises(InterpreterInitError):
        KernelLogInterpreter(PlatformConfig(target_os="plan9", target_arch="amd64"))
    with pytest.raises(InterpreterInitError):
        new_interpreter(PlatformConfig(target_os="linux", target_arch="vax"))


def test_kernel_002_parse_finds_first_oops_and_strips_console_prefix() -> None:
    parsed = new_interpreter(LINUX).parse(CONSOLE_LOG)

    assert parsed is not None
    assert parsed.title == "BUG: KASAN: use-after-free in ext4_xattr_set_entry"
    assert parsed.raw_crash_text.startswith("[   12.345679][ T5021] BUG: KASAN")
    assert parsed.output == CONSOLE_LOG
    assert parsed.guilty_file == ""


def test_kernel_003_parse_returns_none_without_oops() -> None:
    log = "[    1.0][ T1] booting\n[    2.0][ T1] syzkaller login:\n"

    assert new_interpreter(LINUX).parse(log) is None


def test_kernel_004_bsd_targets_use_panic_markers() -> None:
    interpreter = new_interpreter(
        PlatformConfig(target_os="freebsd", target_arch="amd64")
    )

    parsed = interpreter.parse("boot ok\npanic: vm_fault: fault on nofault entry\n")

    assert parsed is not None
    assert parsed.title == "panic: vm_fault: fault on nofault entry"


def test_kernel_005_symbolize_blames_first_non_generic_frame() -> None:
    report = ParsedReport(
        title="BUG: KASAN", raw_crash_text=SYMBOLIZED_REPORT, output=CONSOLE_LOG
    )

    new_interpreter(LINUX).symbolize(report)

    assert report.guilty_file == "fs/ext4/xattr.c"


def test_kernel_006_symbolize_without_source_locations_finds_nothing() -> None:
    report = ParsedReport(
        title="BUG: KASAN", raw_crash_text=CONSOLE_LOG, output=CONSOLE_LOG
    )

    new_interpreter(LINUX).symbolize(report)

    assert report.guilty_file == ""


def test_kernel_007_symbolize_rejects_empty_report() -> None:
    report = ParsedReport(title="BUG: KASAN", raw_crash_text="  \n", output="")

    with pytest.raises(SymbolizeError):
        new_interpreter(LINUX).symbolize(report)


def test_kernel_008_guilty_file_skips_headers_and_drops_dot_prefix() -> None:
    crash_text = "\n".join(
        [
            " refcount_warn_saturate+0x1d/0x30 include/linux/refcount.h:25",
            " mutex_lock_nested+0x16/0x20 kernel/locking/mutex.c:799",
            " nbd_ioctl+0x40/0x90 ./drivers/block/nbd.c:1512",
        ]
    )

    assert extract_guilty_file(crash_text) == "drivers/block/nbd.c"


def test_kernel_009_strip_console_prefix_keeps_plain_lines() -> None:
    assert strip_console_prefix("[  1.5][ C0] WARNING: x") == "WARNING: x"
    assert strip_console_prefix("WARNING: x") == "WARNING: x"


def test_kernel_010_pipeline_derives_guilty_file_from_dashboard_report() -> None:
    dashboard = RecordingDashboard()
    pipeline = ReportPipeline(client=dashboard, interpreter_factory=new_interpreter)

    outcome = pipeline.process(
        make_report(
            "b1", raw_log=CONSOLE_LOG, symbolized_report=SYMBOLIZED_REPORT, crash_id=9
        )
    )

    assert outcome.kind == "updated"
    assert dashboard.persisted == [("b1", 9, ["fs/ext4/xattr.c"])]


def test_kernel_011_gpf_blames_rip_frame_over_caller() -> None:
    crash_text = "\n".join(
        [
            "general protection fault, probably for non-canonical address"
            " 0xdffffc0000000001: 0000 [#1] PREEMPT SMP KASAN",
            "CPU: 1 PID: 5100 Comm: syz-executor.2 Not tainted 6.6.0-syzkaller",
            "RIP: 0010:nbd_ioctl+0x40/0x90 drivers/block/nbd.c:1512",
            "Code: 48 89 fa 48 c1 ea 03 80 3c 02 00 0f 85",
            "Call Trace:",
            " <TASK>",
            " blkdev_ioctl+0x2f1/0x740 block/ioctl.c:616",
            " vfs_ioctl fs/ioctl.c:51 [inline]",
            " </TASK>",
        ]
    )

    assert extract_guilty_file(crash_text) == "drivers/block/nbd.c"


def test_kernel_012_warning_header_location_is_blamed_first() -> None:
    crash_text = "\n".join(
        [
            "WARNING: CPU: 0 PID: 5021 at net/sched/sch_api.c:412"
            " qdisc_put+0x10/0x20",
            "Modules linked in:",
            "RIP: 0010:qdisc_put+0x10/0x20 net/sched/sch_api.c:412",
            "Call Trace:",
            " tcf_block_put+0x51/0x90 net/sched/cls_api.c:1420",
        ]
    )

    assert extract_guilty_file(crash_text) == "net/sched/sch_api.c"


def test_kernel_013_ignored_header_location_falls_through_to_same_line() -> None:
    crash_text = (
        "BUG: KASAN: slab-out-of-bounds in memcpy include/linux/fortify.h:20"
        " (called from ./sound/core/pcm.c:88)"
    )

    assert extract_guilty_file(crash_text) == "sound/core/pcm.c"
