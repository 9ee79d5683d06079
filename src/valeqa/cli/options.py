# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared Typer option declarations and their normalised form.

Options mirroring workflow inputs also read the matching ``INPUT_*``
environment variable, the convention GitHub Actions uses for action inputs.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer

from ..config import RawOptions, build_raw_options, is_truthy
from ..logging import RunLogger, build_run_logger
from ..pipeline import ChangeSourceSettings


class OutputFormat(str, Enum):
    """Report formats supported by ``valeqa run``."""

    ANNOTATIONS = "annotations"
    TABLE = "table"
    JSON = "json"


WORKSPACE_OPTION = Annotated[
    Path,
    typer.Option("--workspace", "-w", envvar="GITHUB_WORKSPACE", help="Repository checkout to lint."),
]
CONFIG_OPTION = Annotated[
    str | None,
    typer.Option("--config", envvar="INPUT_CONFIG", help="URL or path of an external .vale.ini."),
]
STYLES_OPTION = Annotated[
    str | None,
    typer.Option("--styles", envvar="INPUT_STYLES", help="Newline-separated style package sources."),
]
FILES_OPTION = Annotated[
    str | None,
    typer.Option(
        "--files",
        envvar="INPUT_FILES",
        help="'all', '__onlyModified', a path, or a JSON array of paths.",
    ),
]
ONLY_MODIFIED_OPTION = Annotated[
    str | None,
    typer.Option(
        "--only-annotate-modified-lines",
        envvar="INPUT_ONLYANNOTATEMODIFIEDLINES",
        help="Anything but 'false' restricts linting to modified files and lines.",
    ),
]
DEBUG_OPTION = Annotated[
    str | None,
    typer.Option("--debug", envvar="INPUT_DEBUG", help="Set to 'true' for debug output."),
]
VALE_BINARY_OPTION = Annotated[
    str | None,
    typer.Option("--vale-binary", envvar="VALEQA_VALE_BINARY", help="Vale executable to run."),
]
TIMEOUT_OPTION = Annotated[
    float | None,
    typer.Option("--timeout", min=0.0, help="Seconds before a Vale invocation is abandoned."),
]
DIFF_FILE_OPTION = Annotated[
    Path | None,
    typer.Option(
        "--diff-file",
        exists=True,
        dir_okay=False,
        help="Saved pull-request files payload (JSON) describing the change.",
    ),
]
BASE_REF_OPTION = Annotated[
    str | None,
    typer.Option("--base-ref", help="Git reference the change is diffed against."),
]
NO_EMOJI_OPTION = Annotated[bool, typer.Option("--no-emoji", help="Disable emoji output.")]
NO_COLOR_OPTION = Annotated[bool, typer.Option("--no-color", help="Disable coloured output.")]


@dataclass(slots=True)
class ReviewCLIOptions:
    """Normalised CLI inputs shared by review commands."""

    workspace: Path
    raw: RawOptions
    sources: ChangeSourceSettings
    emoji: bool
    no_color: bool
    github: bool

    def build_logger(self, *, stderr: bool = False) -> RunLogger:
        """Return a logger honouring the presentation and debug flags."""

        return build_run_logger(
            emoji=self.emoji,
            debug=is_truthy(self.raw.debug),
            no_color=self.no_color,
            github=self.github,
            stderr=stderr,
        )


def running_in_github_actions(env: Mapping[str, str] | None = None) -> bool:
    """Return ``True`` inside a GitHub Actions job."""

    return (env if env is not None else os.environ).get("GITHUB_ACTIONS") == "true"


def build_review_options(
    *,
    workspace: Path,
    config: str | None,
    styles: str | None,
    files: str | None,
    only_modified: str | None,
    debug: str | None,
    vale_binary: str | None,
    timeout: float | None,
    diff_file: Path | None,
    base_ref: str | None,
    no_emoji: bool,
    no_color: bool,
) -> ReviewCLIOptions:
    """Construct ``ReviewCLIOptions`` from Typer parameters.

    Raises:
        ConfigError: If ``[tool.valeqa]`` or the merged options are invalid.
    """

    resolved_workspace = workspace.expanduser().resolve()
    raw = build_raw_options(
        resolved_workspace,
        {
            "config": config,
            "styles": styles,
            "files": files,
            "only_annotate_modified_lines": only_modified,
            "debug": debug,
            "vale_binary": vale_binary,
            "timeout": timeout,
        },
    )
    sources = ChangeSourceSettings.from_environment(
        os.environ,
        diff_file=diff_file.resolve() if diff_file else None,
        base_ref=base_ref,
    )
    return ReviewCLIOptions(
        workspace=resolved_workspace,
        raw=raw,
        sources=sources,
        emoji=not no_emoji,
        no_color=no_color,
        github=running_in_github_actions(),
    )


__all__ = [
    "BASE_REF_OPTION",
    "CONFIG_OPTION",
    "DEBUG_OPTION",
    "DIFF_FILE_OPTION",
    "FILES_OPTION",
    "NO_COLOR_OPTION",
    "NO_EMOJI_OPTION",
    "ONLY_MODIFIED_OPTION",
    "OutputFormat",
    "ReviewCLIOptions",
    "STYLES_OPTION",
    "TIMEOUT_OPTION",
    "VALE_BINARY_OPTION",
    "WORKSPACE_OPTION",
    "build_review_options",
    "running_in_github_actions",
]
