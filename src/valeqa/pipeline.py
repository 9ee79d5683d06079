# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""End-to-end review run: configuration, changes, scope, Vale, and filtering."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .changeset import (
    GITHUB_API_URL,
    ChangeSet,
    ChangeSource,
    GitDiffChangeSource,
    GitHubPullRequestChangeSource,
    PatchPayloadChangeSource,
    load_change_set,
)
from .config import ConfigFetcher, RawOptions, RunConfig, fetch_config, resolve_run_config
from .errors import ChangeSourceError
from .linter import ValeRunner
from .logging import RunLogger
from .process import CommandRunner
from .results import Alert, AlertSeverity, filter_alerts, parse_vale_output
from .scope import ScopeResult, resolve_scope

DEFAULT_REMOTE: Final[str] = "origin"


@dataclass(frozen=True, slots=True)
class ChangeSourceSettings:
    """Inputs deciding where the change set comes from."""

    diff_file: Path | None = None
    base_ref: str | None = None
    repository: str | None = None
    pull_number: int | None = None
    token: str | None = None
    api_url: str = GITHUB_API_URL

    @classmethod
    def from_environment(cls, env: Mapping[str, str], **overrides: object) -> ChangeSourceSettings:
        """Read GitHub Actions variables, letting non-``None`` ``overrides`` win.

        ``GITHUB_BASE_REF`` becomes ``origin/<base>`` and the pull request
        number is read from the event payload at ``GITHUB_EVENT_PATH``.
        """

        base = env.get("GITHUB_BASE_REF") or None
        values: dict[str, object] = {
            "base_ref": f"{DEFAULT_REMOTE}/{base}" if base else None,
            "repository": env.get("GITHUB_REPOSITORY") or None,
            "pull_number": _pull_number_from_event(env.get("GITHUB_EVENT_PATH")),
            "token": env.get("INPUT_TOKEN") or env.get("GITHUB_TOKEN") or None,
            "api_url": env.get("GITHUB_API_URL") or GITHUB_API_URL,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)  # type: ignore[arg-type]


def _pull_number_from_event(event_path: str | None) -> int | None:
    if not event_path:
        return None
    try:
        event = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    pull_request = event.get("pull_request") if isinstance(event, dict) else None
    number = pull_request.get("number") if isinstance(pull_request, dict) else None
    return number if isinstance(number, int) else None


def select_change_source(
    workspace: Path,
    settings: ChangeSourceSettings,
    *,
    runner: CommandRunner | None = None,
) -> ChangeSource:
    """Return the change provider matching ``settings``.

    A saved payload wins, then the GitHub API when a pull request and token
    are known, and finally ``git diff`` in the workspace.
    """

    if settings.diff_file is not None:
        return PatchPayloadChangeSource(settings.diff_file)
    if settings.repository and settings.pull_number is not None and settings.token:
        return GitHubPullRequestChangeSource(
            settings.repository,
            settings.pull_number,
            token=settings.token,
            api_url=settings.api_url,
        )
    return GitDiffChangeSource(workspace, base_ref=settings.base_ref, runner=runner)


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
    """Everything a review run produced."""

    version: str
    config: RunConfig
    scope: ScopeResult
    alerts: tuple[Alert, ...]
    reported: tuple[Alert, ...]

    @property
    def has_errors(self) -> bool:
        """Return ``True`` when a reported alert has ``error`` severity."""

        return any(alert.severity is AlertSeverity.ERROR for alert in self.reported)


def load_changes(source: ChangeSource, run_config: RunConfig, logger: RunLogger) -> ChangeSet:
    """Load the change set, tolerating provider failures outside modified-only mode.

    Raises:
        ChangeSourceError: When the provider fails and findings are restricted
            to modified lines.
    """

    try:
        change_set = load_change_set(source)
    except ChangeSourceError as exc:
        if run_config.only_modified:
            raise
        logger.warn(f"Unable to determine modified lines: {exc}.")
        return ChangeSet()
    logger.debug(f"loaded changes files={len(change_set)}")
    return change_set


def run_review(
    raw: RawOptions,
    workspace: Path,
    logger: RunLogger,
    *,
    change_source: ChangeSource,
    vale: ValeRunner | None = None,
    fetcher: ConfigFetcher = fetch_config,
) -> ReviewOutcome:
    """Run Vale over the resolved scope and filter its findings.

    Args:
        raw: Raw options for the run.
        workspace: Repository checkout to lint.
        logger: Logger receiving warnings and debug output.
        change_source: Provider of the change set.
        vale: Optional pre-built runner; one is created from the config otherwise.
        fetcher: Callable fetching the external configuration.

    Returns:
        ReviewOutcome: Version, scope, and the raw and filtered alerts.

    Raises:
        ValeqaError: On fatal failures (style install, change loading, Vale errors).
    """

    with resolve_run_config(raw, workspace, logger, fetcher=fetcher) as run_config:
        runner = vale or ValeRunner(run_config.vale_binary, cwd=workspace, timeout=run_config.timeout)
        version = runner.version()
        logger.debug(f"Using Vale {version}")
        change_set = load_changes(change_source, run_config, logger)
        scope = resolve_scope(change_set, run_config, workspace, runner, logger)
        result = runner.run(scope.tool_arguments, scope.targets)
    alerts = parse_vale_output(result.stdout)
    reported = filter_alerts(alerts, scope.line_index, only_modified=run_config.only_modified)
    logger.debug(f"alerts total={len(alerts)} reported={len(reported)}")
    return ReviewOutcome(
        version=version,
        config=run_config,
        scope=scope,
        alerts=tuple(alerts),
        reported=tuple(reported),
    )


__all__ = [
    "ChangeSourceSettings",
    "ReviewOutcome",
    "load_changes",
    "run_review",
    "select_change_source",
]
