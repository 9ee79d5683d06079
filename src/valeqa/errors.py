# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared across valeqa."""

from __future__ import annotations


class ValeqaError(Exception):
    """Base class for fatal valeqa errors."""


class ConfigError(ValeqaError):
    """Raised when configuration input is invalid."""


class ChangeSourceError(ValeqaError):
    """Raised when the change provider is unreachable or returns malformed data."""


class LinterError(ValeqaError):
    """Base class for failures while driving the Vale binary."""


class LinterNotFoundError(LinterError):
    """Raised when the Vale executable cannot be resolved."""


class LinterExecutionError(LinterError):
    """Raised when the main Vale run cannot complete."""


class LinterOutputError(LinterError):
    """Raised when Vale emits output that is not the documented JSON document."""


class StyleInstallError(LinterError):
    """Raised when ``vale install`` reports a hard failure for a style package."""

    def __init__(self, name: str, source: str, stderr: str) -> None:
        """Capture the failing package and the diagnostic text Vale produced.

        Args:
            name: Style package name passed to ``vale install``.
            source: URL or registry name the package was installed from.
            stderr: Standard error captured from the install invocation.
        """

        detail = stderr.strip() or "<no stderr>"
        super().__init__(f"Failed to install style '{name}' from {source}: {detail}")
        self.name = name
        self.source = source
        self.stderr = stderr


__all__ = [
    "ChangeSourceError",
    "ConfigError",
    "LinterError",
    "LinterExecutionError",
    "LinterNotFoundError",
    "LinterOutputError",
    "StyleInstallError",
    "ValeqaError",
]
