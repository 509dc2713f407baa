# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Dashboard client implementations."""

from fillreports.dashboard.http import DEFAULT_DASHBOARD_URL, HTTPDashboardClient

__all__ = ["DEFAULT_DASHBOARD_URL", "HTTPDashboardClient"]
