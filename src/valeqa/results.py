# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parse Vale's JSON findings and keep those on modified lines."""

from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterable, Mapping
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .changeset import normalize_change_path
from .errors import LinterOutputError


class AlertSeverity(str, Enum):
    """Severity vocabulary used by Vale."""

    SUGGESTION = "suggestion"
    WARNING = "warning"
    ERROR = "error"


class Alert(BaseModel):
    """Single Vale finding attached to a file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    path: str
    line: int = Field(alias="Line", ge=1)
    span: tuple[int, int] = Field(default=(1, 1), alias="Span")
    check: str = Field(alias="Check")
    message: str = Field(alias="Message")
    severity: AlertSeverity = Field(default=AlertSeverity.WARNING, alias="Severity")
    link: str = Field(default="", alias="Link")
    match: str = Field(default="", alias="Match")

    @field_validator("path", mode="before")
    @classmethod
    def _normalize_path(cls, value: object) -> object:
        return normalize_change_path(value) if isinstance(value, str) else value

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value


def parse_vale_output(text: str) -> list[Alert]:
    """Decode Vale's ``--output=JSON`` document into alerts.

    Args:
        text: Standard output of the main Vale run.

    Returns:
        list[Alert]: Alerts ordered by path, then line, then column.

    Raises:
        LinterOutputError: If ``text`` is not the expected ``{path: [alert]}`` object.
    """

    if not text.strip():
        return []
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LinterOutputError(f"Vale output is not valid JSON: {exc}") from exc
    if not isinstance(document, Mapping):
        raise LinterOutputError("Vale output must be a JSON object keyed by file path")

    alerts: list[Alert] = []
    for path, entries in document.items():
        if not isinstance(entries, list):
            raise LinterOutputError(f"alerts for {path} must be a JSON array")
        for entry in entries:
            if not isinstance(entry, Mapping):
                raise LinterOutputError(f"alert for {path} must be a JSON object")
            try:
                alerts.append(Alert.model_validate({**entry, "path": path}))
            except ValidationError as exc:
                raise LinterOutputError(f"malformed alert for {path}: {exc}") from exc
    alerts.sort(key=lambda alert: (alert.path, alert.line, alert.span[0]))
    return alerts


def filter_alerts(
    alerts: Iterable[Alert],
    line_index: Mapping[str, frozenset[int]],
    *,
    only_modified: bool,
) -> list[Alert]:
    """Drop alerts that fall outside the modified lines.

    Args:
        alerts: Alerts parsed from Vale's output.
        line_index: ``path -> modified lines`` mapping from scope resolution.
        only_modified: When ``False`` every alert is kept.

    Returns:
        list[Alert]: Alerts eligible for reporting.
    """

    if not only_modified:
        return list(alerts)
    normalized = {normalize_change_path(path): lines for path, lines in line_index.items()}
    return [alert for alert in alerts if alert.line in normalized.get(alert.path, frozenset())]


def count_by_severity(alerts: Iterable[Alert]) -> dict[AlertSeverity, int]:
    """Return the number of alerts per severity, including zero counts."""

    counts = Counter(alert.severity for alert in alerts)
    return {severity: counts.get(severity, 0) for severity in AlertSeverity}


__all__ = [
    "Alert",
    "AlertSeverity",
    "count_by_severity",
    "filter_alerts",
    "parse_vale_output",
]
