# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Crash interpreter implementations."""

from fillreports.interpreters.kernel import KernelLogInterpreter, new_interpreter

__all__ = ["KernelLogInterpreter", "new_interpreter"]
