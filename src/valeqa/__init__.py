# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Run the Vale prose linter on a change and keep findings on the lines it touched."""

from __future__ import annotations

from .changeset import ChangeRecord, ChangeSet
from .config import FileSelectionMode, RawOptions, RunConfig, StylePackage
from .errors import ChangeSourceError, ConfigError, StyleInstallError, ValeqaError
from .scope import ScopeResult, resolve_scope

__version__ = "0.1.0"

__all__ = [
    "ChangeRecord",
    "ChangeSet",
    "ChangeSourceError",
    "ConfigError",
    "FileSelectionMode",
    "RawOptions",
    "RunConfig",
    "ScopeResult",
    "StyleInstallError",
    "StylePackage",
    "ValeqaError",
    "__version__",
    "resolve_scope",
]
