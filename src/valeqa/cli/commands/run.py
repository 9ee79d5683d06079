# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``valeqa run``: lint the change and report findings on modified lines."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer

from ...errors import ValeqaError
from ...logging import RunLogger
from ...pipeline import ReviewOutcome, run_review, select_change_source
from ...reporting import emit_annotations, render_summary, write_json_report
from ..options import (
    BASE_REF_OPTION,
    CONFIG_OPTION,
    DEBUG_OPTION,
    DIFF_FILE_OPTION,
    FILES_OPTION,
    NO_COLOR_OPTION,
    NO_EMOJI_OPTION,
    ONLY_MODIFIED_OPTION,
    STYLES_OPTION,
    TIMEOUT_OPTION,
    VALE_BINARY_OPTION,
    WORKSPACE_OPTION,
    OutputFormat,
    build_review_options,
)

FORMAT_OPTION = Annotated[
    OutputFormat | None,
    typer.Option(
        "--format",
        "-f",
        case_sensitive=False,
        help="Report format; defaults to annotations inside GitHub Actions and a table elsewhere.",
    ),
]
FAIL_ON_ERROR_OPTION = Annotated[
    bool,
    typer.Option("--fail-on-error/--no-fail-on-error", help="Exit 1 when an error-level finding is reported."),
]


def review_command(
    workspace: WORKSPACE_OPTION = Path("."),
    config: CONFIG_OPTION = None,
    styles: STYLES_OPTION = None,
    files: FILES_OPTION = None,
    only_modified: ONLY_MODIFIED_OPTION = None,
    debug: DEBUG_OPTION = None,
    vale_binary: VALE_BINARY_OPTION = None,
    timeout: TIMEOUT_OPTION = None,
    diff_file: DIFF_FILE_OPTION = None,
    base_ref: BASE_REF_OPTION = None,
    output_format: FORMAT_OPTION = None,
    fail_on_error: FAIL_ON_ERROR_OPTION = True,
    no_emoji: NO_EMOJI_OPTION = False,
    no_color: NO_COLOR_OPTION = False,
) -> None:
    """Run Vale over the change and report findings on the modified lines.

    Raises:
        typer.Exit: Always raised to terminate the command with an exit status.
    """

    try:
        options = build_review_options(
            workspace=workspace,
            config=config,
            styles=styles,
            files=files,
            only_modified=only_modified,
            debug=debug,
            vale_binary=vale_binary,
            timeout=timeout,
            diff_file=diff_file,
            base_ref=base_ref,
            no_emoji=no_emoji,
            no_color=no_color,
        )
    except ValeqaError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    resolved_format = output_format or (OutputFormat.ANNOTATIONS if options.github else OutputFormat.TABLE)
    logger = options.build_logger(stderr=resolved_format is OutputFormat.JSON)
    try:
        outcome = run_review(
            options.raw,
            options.workspace,
            logger,
            change_source=select_change_source(options.workspace, options.sources),
        )
    except ValeqaError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=1) from exc

    _report(outcome, resolved_format, logger)
    raise typer.Exit(code=1 if fail_on_error and outcome.has_errors else 0)


def _report(outcome: ReviewOutcome, output_format: OutputFormat, logger: RunLogger) -> None:
    """Write ``outcome`` in ``output_format`` and log a one-line summary."""

    if output_format is OutputFormat.ANNOTATIONS:
        emit_annotations(outcome.reported, sys.stdout)
    elif output_format is OutputFormat.JSON:
        write_json_report(outcome.reported, sys.stdout)
    else:
        render_summary(outcome.reported, logger.console)

    skipped = len(outcome.alerts) - len(outcome.reported)
    summary = f"Vale {outcome.version}: {len(outcome.reported)} finding(s) reported"
    if skipped:
        summary = f"{summary}, {skipped} outside modified lines"
    if outcome.has_errors:
        logger.warn(summary)
    else:
        logger.ok(summary)


def register(app: typer.Typer) -> None:
    """Register the ``run`` command on ``app``."""

    app.command("run")(review_command)


__all__ = ["register", "review_command"]
