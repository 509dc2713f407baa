# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Concurrent bug report loading."""

import concurrent.futures
import logging
import queue
import threading
from collections.abc import Generator
from typing import TypeVar

from fillreports.dashboard_client import DashboardClient, DashboardError
from fillreports.model import BugReport

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS: int = 8
DEFAULT_LOG_STEP: int = 100

# How often blocked queue operations re-check the stop event.
_POLL_INTERVAL_SECONDS: float = 0.1

_T = TypeVar("_T")


class _EndOfStream:
    """Mark a closed queue."""


_END = _EndOfStream()


class RecordFetchPool:
    """Load bug reports with a fixed number of worker threads."""

    def __init__(
        self,
        client: DashboardClient,
        max_workers: int = DEFAULT_MAX_WORKERS,
        log_step: int = DEFAULT_LOG_STEP,
    ) -> None:
        """Initialize the fetch pool.

        Args:
            client: Dashboard client used to load reports.
            max_workers: Number of concurrent fetch workers.
            log_step: Emit a progress line every N dispatched IDs.

        Raises:
            ValueError: If ``max_workers`` or ``log_step`` is not greater than
                zero.
        """
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        if log_step <= 0:
            raise ValueError("log_step must be > 0")
        self._client = client
        self._max_workers = max_workers
        self._log_step = log_step

    def load(self, bug_ids: list[str]) -> Generator[BugReport, None, None]:
        """Stream loaded bug reports in fetch completion order.

        Reports that fail to load or do not exist are dropped. The stream ends
        once every ID has been dispatched and every worker has finished.
        Closing the iterator early stops the workers.

        Args:
            bug_ids: Bug identifiers to load.

        Yields:
            Loaded bug reports.
        """
        ids: queue.Queue[str | _EndOfStream] = queue.Queue(maxsize=1)
        reports: queue.Queue[BugReport | _EndOfStream] = queue.Queue(maxsize=1)
        stop = threading.Event()
        abort = threading.Event()

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=self._max_workers + 1, thread_name_prefix="fetch"
        ) as executor:
            workers = [
                executor.submit(self._work, ids, reports, stop, abort)
                for _ in range(self._max_workers)
            ]
            executor.submit(
                self._dispatch, bug_ids, ids, reports, workers, stop, abort
            )
            try:
                while True:
                    item = reports.get()
                    if isinstance(item, _EndOfStream):
                        break
                    yield item
            finally:
                stop.set()

        for worker in workers:
            # Re-raise unexpected worker failures; DashboardError never escapes.
            worker.result()

    def _dispatch(
        self,
        bug_ids: list[str],
        ids: "queue.Queue[str | _EndOfStream]",
        reports: "queue.Queue[BugReport | _EndOfStream]",
        workers: list[concurrent.futures.Future[None]],
        stop: threading.Event,
        abort: threading.Event,
    ) -> None:
        """Feed IDs to the workers and close the report stream when done."""
        total = len(bug_ids)
        try:
            for index, bug_id in enumerate(bug_ids):
                if index % self._log_step == 0:
                    logger.info("loaded %d/%d", index, total)
                if not _put(ids, bug_id, stop, abort):
                    break
            else:
                for _ in workers:
                    if not _put(ids, _END, stop, abort):
                        break
            concurrent.futures.wait(workers)
        finally:
            _put(reports, _END, stop)

    def _work(
        self,
        ids: "queue.Queue[str | _EndOfStream]",
        reports: "queue.Queue[BugReport | _EndOfStream]",
        stop: threading.Event,
        abort: threading.Event,
    ) -> None:
        """Load reports for IDs until the ID stream ends."""
        try:
            while True:
                bug_id = _get(ids, stop, abort)
                if bug_id is None or isinstance(bug_id, _EndOfStream):
                    return
                try:
                    report = self._client.fetch_record(bug_id)
                except DashboardError as exc:
                    logger.warning("%s: failed to load bug: %s", bug_id, exc)
                    continue
                if not report.bug_id:
                    logger.debug("%s: bug not found", bug_id)
                    continue
                if not _put(reports, report, stop):
                    return
        except BaseException:
            abort.set()
            raise


def _put(target: "queue.Queue[_T]", item: _T, *halts: threading.Event) -> bool:
    """Put an item, giving up once any of ``halts`` is set.

    Returns:
        True when the item was queued.
    """
    while not any(halt.is_set() for halt in halts):
        try:
            target.put(item, timeout=_POLL_INTERVAL_SECONDS)
        except queue.Full:
            continue
        return True
    return False


def _get(source: "queue.Queue[_T]", *halts: threading.Event) -> _T | None:
    """Get an item, returning ``None`` once any of ``halts`` is set."""
    while not any(halt.is_set() for halt in halts):
        try:
            return source.get(timeout=_POLL_INTERVAL_SECONDS)
        except queue.Empty:
            continue
    return None
