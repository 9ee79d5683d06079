# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Render filtered Vale alerts as workflow annotations and Rich tables."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Final, TextIO

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .logging import escape_workflow_data, escape_workflow_property
from .results import Alert, AlertSeverity, count_by_severity

ANNOTATION_LEVELS: Final[dict[AlertSeverity, str]] = {
    AlertSeverity.SUGGESTION: "notice",
    AlertSeverity.WARNING: "warning",
    AlertSeverity.ERROR: "error",
}
SEVERITY_STYLES: Final[dict[AlertSeverity, str]] = {
    AlertSeverity.SUGGESTION: "cyan",
    AlertSeverity.WARNING: "yellow",
    AlertSeverity.ERROR: "bold red",
}


def format_annotation(alert: Alert) -> str:
    """Return the GitHub workflow command annotating ``alert``."""

    start, end = alert.span
    properties = {
        "file": alert.path,
        "line": str(alert.line),
        "col": str(start),
        "endColumn": str(end),
        "title": f"[{alert.severity.value}] {alert.check}",
    }
    rendered = ",".join(f"{key}={escape_workflow_property(value)}" for key, value in properties.items())
    message = alert.message if not alert.link else f"{alert.message}\n{alert.link}"
    return f"::{ANNOTATION_LEVELS[alert.severity]} {rendered}::{escape_workflow_data(message)}"


def emit_annotations(alerts: Sequence[Alert], stream: TextIO) -> int:
    """Write one workflow annotation per alert to ``stream``.

    Returns:
        int: Number of annotations written.
    """

    for alert in alerts:
        stream.write(f"{format_annotation(alert)}\n")
    stream.flush()
    return len(alerts)


def write_json_report(alerts: Sequence[Alert], stream: TextIO) -> None:
    """Serialise ``alerts`` as a JSON array."""

    payload = [alert.model_dump(mode="json") for alert in alerts]
    stream.write(json.dumps(payload, indent=2))
    stream.write("\n")


def build_summary_table(alerts: Sequence[Alert]) -> Table:
    """Return a table listing each alert followed by per-severity totals."""

    table = Table(box=box.SIMPLE_HEAVY, title="Vale findings", show_lines=False)
    table.add_column("Location", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Check", style="magenta")
    table.add_column("Message")
    for alert in alerts:
        table.add_row(
            f"{alert.path}:{alert.line}:{alert.span[0]}",
            Text(alert.severity.value, style=SEVERITY_STYLES[alert.severity]),
            Text(alert.check),
            Text(alert.message),
        )
    totals = count_by_severity(alerts)
    table.caption = ", ".join(f"{count} {severity.value}" for severity, count in totals.items())
    return table


def render_summary(alerts: Sequence[Alert], console: Console) -> None:
    """Print the summary table, or a short note when nothing was found."""

    if not alerts:
        console.print("No Vale findings on the selected lines.")
        return
    console.print(build_summary_table(alerts))


__all__ = [
    "ANNOTATION_LEVELS",
    "build_summary_table",
    "emit_annotations",
    "format_annotation",
    "render_summary",
    "write_json_report",
]
