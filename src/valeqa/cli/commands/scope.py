# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``valeqa scope``: print the resolved Vale arguments and modified-line index."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer

from ...config import resolve_run_config
from ...errors import ValeqaError
from ...linter import ValeRunner
from ...pipeline import load_changes, select_change_source
from ...scope import ScopeResult, resolve_scope
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
    VALE_BINARY_OPTION,
    WORKSPACE_OPTION,
    build_review_options,
)

SKIP_STYLES_OPTION = Annotated[
    bool,
    typer.Option("--skip-styles", help="Resolve the scope without installing style packages."),
]


def scope_payload(scope: ScopeResult) -> dict[str, object]:
    """Return a JSON-serialisable view of ``scope``."""

    return {
        "mode": scope.mode.value,
        "arguments": list(scope.tool_arguments),
        "targets": list(scope.targets),
        "lines": {path: sorted(lines) for path, lines in scope.line_index.items()},
    }


def scope_command(
    workspace: WORKSPACE_OPTION = Path("."),
    config: CONFIG_OPTION = None,
    styles: STYLES_OPTION = None,
    files: FILES_OPTION = None,
    only_modified: ONLY_MODIFIED_OPTION = None,
    debug: DEBUG_OPTION = None,
    vale_binary: VALE_BINARY_OPTION = None,
    diff_file: DIFF_FILE_OPTION = None,
    base_ref: BASE_REF_OPTION = None,
    skip_styles: SKIP_STYLES_OPTION = False,
    no_emoji: NO_EMOJI_OPTION = False,
    no_color: NO_COLOR_OPTION = False,
) -> None:
    """Print the Vale arguments and modified-line index as JSON.

    The temporary external config only lives for the duration of this
    command, so the printed ``--config`` path is informational.

    Raises:
        typer.Exit: Raised with status 1 on fatal errors.
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
            timeout=None,
            diff_file=diff_file,
            base_ref=base_ref,
            no_emoji=no_emoji,
            no_color=no_color,
        )
    except ValeqaError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    logger = options.build_logger(stderr=True)
    source = select_change_source(options.workspace, options.sources)
    try:
        with resolve_run_config(options.raw, options.workspace, logger) as run_config:
            if skip_styles:
                run_config = replace(run_config, style_packages=())
            change_set = load_changes(source, run_config, logger)
            runner = ValeRunner(run_config.vale_binary, cwd=options.workspace)
            scope = resolve_scope(change_set, run_config, options.workspace, runner, logger)
    except ValeqaError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=1) from exc

    typer.echo(json.dumps(scope_payload(scope), indent=2))


def register(app: typer.Typer) -> None:
    """Register the ``scope`` command on ``app``."""

    app.command("scope")(scope_command)


__all__ = ["register", "scope_command", "scope_payload"]
