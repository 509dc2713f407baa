# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Dashboard client HTTP implementation."""

import base64
import binascii
import gzip
import json
import logging
from typing import Any
from urllib.parse import urlencode, urlparse

import httpx

from fillreports.dashboard_client import DashboardError
from fillreports.model import BugReport, BugStatus

logger = logging.getLogger(__name__)

DEFAULT_DASHBOARD_URL: str = "https://syzkaller.appspot.com"
DEFAULT_TIMEOUT_SECONDS: float = 60.0

# Numeric bug status values used by the dashboard API.
BUG_STATUS_OPEN: int = 0


class HTTPDashboardClient:
    """Talk to the dashboard API over HTTP."""

    def __init__(
        self,
        client_name: str,
        address: str = DEFAULT_DASHBOARD_URL,
        key: str = "",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize client configuration.

        Args:
            client_name: API client name registered on the dashboard.
            address: Dashboard base URL.
            key: API key for ``client_name``.
            timeout: Per-request timeout in seconds.
            transport: Optional HTTP transport override.

        Raises:
            DashboardError: If the client name or address is invalid.
        """
        if not client_name.strip():
            raise DashboardError("dashboard client name is empty")
        self._api_url = f"{_normalize_address(address)}/api"
        self._client_name = client_name
        self._key = key
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def list_open_ids(self) -> list[str]:
        """List identifiers of all open bugs.

        Returns:
            Bug identifiers.

        Raises:
            DashboardError: If the query fails or the reply is malformed.
        """
        reply = self._query("bug_list", None)
        ids = reply.get("List") or []
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise DashboardError(f"malformed bug_list reply: {reply!r}")
        return ids

    def fetch_record(self, bug_id: str) -> BugReport:
        """Load one bug report.

        Args:
            bug_id: Dashboard bug identifier.

        Returns:
            Loaded bug report; ``bug_id`` is empty when the bug is unknown.

        Raises:
            DashboardError: If the request fails or the reply is malformed.
        """
        reply = self._query("load_bug", {"ID": bug_id})
        try:
            return _bug_report_from_reply(reply)
        except (AttributeError, TypeError, ValueError, binascii.Error) as exc:
            logger.warning(
                f"Malformed load_bug reply (bug_id={bug_id} error={exc})"
            )
            raise DashboardError(f"malformed load_bug reply: {exc}") from exc

    def persist_guilty_files(
        self, bug_id: str, crash_id: int, guilty_files: list[str]
    ) -> None:
        """Update report elements of one bug.

        Args:
            bug_id: Dashboard bug identifier.
            crash_id: Crash reference the files were derived from.
            guilty_files: Derived guilty file paths.

        Raises:
            DashboardError: If the update fails.
        """
        self._query(
            "update_report",
            {"BugID": bug_id, "CrashID": crash_id, "GuiltyFiles": guilty_files},
        )

    def _query(self, method: str, request: dict[str, Any] | None) -> dict[str, Any]:
        """Send one API call.

        Args:
            method: API method name.
            request: JSON request object, or ``None`` for methods without one.

        Returns:
            Decoded JSON reply object (empty when the reply has no body).

        Raises:
            DashboardError: If the transport fails, the status is not 200, or
                the reply is not a JSON object.
        """
        values: dict[str, str | bytes] = {
            "client": self._client_name,
            "key": self._key,
            "method": method,
        }
        if request is not None:
            values["payload"] = gzip.compress(json.dumps(request).encode("utf-8"))
        try:
            response = self._http.post(
                self._api_url,
                content=urlencode(values),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as exc:
            logger.warning(
                f"Dashboard request failed (url={self._api_url} method={method} error={exc})"
            )
            raise DashboardError(str(exc)) from exc

        if response.status_code != httpx.codes.OK:
            logger.warning(
                f"Dashboard rejected request (url={self._api_url} method={method} "
                f"status={response.status_code})"
            )
            raise DashboardError(
                f"request failed with {response.status_code}: {response.text.strip()}"
            )
        if not response.content.strip():
            return {}
        try:
            reply = response.json()
        except ValueError as exc:
            logger.warning(
                f"Dashboard reply is not JSON (url={self._api_url} method={method} error={exc})"
            )
            raise DashboardError(f"invalid JSON reply: {exc}") from exc
        if not isinstance(reply, dict):
            raise DashboardError(f"unexpected reply for {method}: {reply!r}")
        return reply


def _normalize_address(address: str) -> str:
    """Validate and normalize the dashboard base URL.

    Args:
        address: User-provided dashboard URL.

    Returns:
        Base URL without trailing slash.

    Raises:
        DashboardError: If the address is not an http(s) URL.
    """
    candidate = address.strip().rstrip("/")
    parsed = urlparse(candidate)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise DashboardError(
            f"invalid dashboard address: expected http(s) URL, got '{address}'"
        )
    return candidate


def _bug_report_from_reply(reply: dict[str, Any]) -> BugReport:
    """Convert a ``load_bug`` reply to a bug report.

    Args:
        reply: Decoded JSON reply.

    Returns:
        Bug report. Binary fields are base64 in the reply. A reply without a
        status is never treated as open.

    Raises:
        TypeError: If ``GuiltyFiles`` is not a list of strings.
    """
    elements = reply.get("ReportElements") or {}
    guilty_files = elements.get("GuiltyFiles")
    if guilty_files is not None and (
        not isinstance(guilty_files, list)
        or not all(isinstance(name, str) for name in guilty_files)
    ):
        raise TypeError(f"GuiltyFiles must be a list of strings: {guilty_files!r}")
    raw_status = reply.get("BugStatus")
    status: BugStatus = (
        "open"
        if raw_status is not None and int(raw_status) == BUG_STATUS_OPEN
        else "other"
    )
    return BugReport(
        bug_id=str(reply.get("ID") or ""),
        target_os=str(reply.get("OS") or ""),
        target_arch=str(reply.get("Arch") or ""),
        raw_log=_decode_bytes(reply.get("Log")),
        symbolized_report=_decode_bytes(reply.get("Report")),
        status=status,
        guilty_files=tuple(guilty_files) if guilty_files is not None else None,
        crash_id=int(reply.get("CrashID") or 0),
    )


def _decode_bytes(value: object) -> str:
    if not value:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"expected base64 string, got {type(value).__name__}")
    return base64.b64decode(value, validate=True).decode("utf-8", errors="replace")
