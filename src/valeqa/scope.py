# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Resolve the Vale invocation and the lines eligible for reporting.

Resolution happens in three sequential steps:

1. build the base flags, including the external-config pair when present;
2. install every style package in order, aborting on the first hard failure;
3. pick positional targets according to the file-selection mode and derive
   the ``path -> lines`` index used later to filter findings.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Protocol

from .changeset import ChangeSet
from .config import FileSelectionMode, RunConfig, StylePackage
from .errors import StyleInstallError
from .linter import HARD_FAILURE_EXIT, LintRun
from .logging import RunLogger
from .process import TIMEOUT_RETURNCODE

NO_EXIT_FLAG: Final[str] = "--no-exit"
JSON_OUTPUT_FLAG: Final[str] = "--output=JSON"
COMPAT_FLAG: Final[str] = "--mode-rev-compat"
CONFIG_FLAG_PREFIX: Final[str] = "--config="
WORKSPACE_TARGET: Final[str] = "."
# Vale lints ``{}`` as an empty document and exits; with ``--no-exit`` and no
# target at all it would wait on stdin forever.
PLACEHOLDER_TARGET: Final[str] = "{}"

LineIndex = Mapping[str, frozenset[int]]


class StyleInstaller(Protocol):
    """Collaborator able to run ``vale install`` for a style package."""

    def install(self, name: str, source: str, config_flags: Sequence[str] = ()) -> LintRun:
        """Install the style ``name`` from ``source``."""
        ...


@dataclass(frozen=True, slots=True)
class ScopeResult:
    """Vale arguments for the main run plus the modified-line index."""

    tool_arguments: tuple[str, ...]
    targets: tuple[str, ...]
    mode: FileSelectionMode
    line_index: LineIndex = field(default_factory=dict)

    @property
    def is_placeholder(self) -> bool:
        """Return ``True`` when no real file survived target resolution."""

        return self.targets == (PLACEHOLDER_TARGET,)


def config_flags(run_config: RunConfig) -> tuple[str, ...]:
    """Return the compatibility and ``--config`` flags for an external config."""

    if run_config.external_config_path is None:
        return ()
    return (COMPAT_FLAG, f"{CONFIG_FLAG_PREFIX}{run_config.external_config_path}")


def base_arguments(run_config: RunConfig) -> tuple[str, ...]:
    """Return the flags every main run starts with."""

    return (NO_EXIT_FLAG, JSON_OUTPUT_FLAG, *config_flags(run_config))


def install_styles(
    packages: Sequence[StylePackage],
    installer: StyleInstaller,
    *,
    flags: Sequence[str] = (),
    logger: RunLogger,
) -> None:
    """Install ``packages`` one at a time, in order.

    Args:
        packages: Style packages to install.
        installer: Collaborator running ``vale install``.
        flags: Config flags placed before the install sub-command.
        logger: Logger receiving progress output.

    Raises:
        StyleInstallError: On the first install reporting a hard failure or
            timing out; the remaining packages are not attempted.
    """

    for package in packages:
        logger.debug(f"Installing style '{package.name}' ...")
        result = installer.install(package.name, package.source, flags)
        if result.returncode in {HARD_FAILURE_EXIT, TIMEOUT_RETURNCODE}:
            raise StyleInstallError(package.name, package.source, result.stderr)
        logger.debug(f"installed style={package.name} status={result.returncode}")


def as_target(path: str) -> str:
    """Return ``path`` in a form Vale cannot mistake for a flag."""

    return f"./{path}" if path.startswith("-") else path


def resolve_targets(
    change_set: ChangeSet,
    run_config: RunConfig,
    workspace: Path,
) -> tuple[tuple[str, ...], dict[str, frozenset[int]]]:
    """Return the positional targets and line index for ``run_config``'s mode.

    Args:
        change_set: Files and lines touched by the change.
        run_config: Normalised configuration selecting the mode.
        workspace: Checkout that modified paths are resolved against.

    Returns:
        tuple: Positional targets (never empty) and the ``path -> lines`` index.
    """

    mode = run_config.file_selection_mode
    if mode is FileSelectionMode.ONLY_MODIFIED:
        present = change_set.existing(workspace)
        targets = tuple(as_target(path) for path in present.paths()) or (PLACEHOLDER_TARGET,)
        return targets, present.line_index()
    if mode is FileSelectionMode.ALL:
        return (WORKSPACE_TARGET,), change_set.line_index()

    explicit = tuple(target for target in run_config.explicit_targets if target)
    index = change_set.restricted_to(explicit).line_index()
    return tuple(as_target(target) for target in explicit) or (PLACEHOLDER_TARGET,), index


def resolve_scope(
    change_set: ChangeSet,
    run_config: RunConfig,
    workspace: Path,
    installer: StyleInstaller,
    logger: RunLogger,
) -> ScopeResult:
    """Compute the Vale arguments and modified-line index for a run.

    Style packages are installed as a side effect; the install invocations
    reuse the config flags but never contribute to the returned arguments.

    Args:
        change_set: Files and lines touched by the change.
        run_config: Normalised configuration for the run.
        workspace: Checkout the run operates on.
        installer: Collaborator running ``vale install``.
        logger: Logger receiving debug output.

    Returns:
        ScopeResult: Arguments for the main run and the line index.

    Raises:
        StyleInstallError: If a style package fails to install.
    """

    base = base_arguments(run_config)
    install_styles(run_config.style_packages, installer, flags=config_flags(run_config), logger=logger)
    targets, line_index = resolve_targets(change_set, run_config, workspace)
    arguments = (*base, *targets)
    logger.debug(f"Vale set-up complete; mode={run_config.file_selection_mode.value} args={' '.join(arguments)}")
    return ScopeResult(
        tool_arguments=arguments,
        targets=targets,
        mode=run_config.file_selection_mode,
        line_index=line_index,
    )


__all__ = [
    "COMPAT_FLAG",
    "CONFIG_FLAG_PREFIX",
    "JSON_OUTPUT_FLAG",
    "LineIndex",
    "NO_EXIT_FLAG",
    "PLACEHOLDER_TARGET",
    "ScopeResult",
    "StyleInstaller",
    "WORKSPACE_TARGET",
    "as_target",
    "base_arguments",
    "config_flags",
    "install_styles",
    "resolve_scope",
    "resolve_targets",
]
