# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the run logger."""

from __future__ import annotations

from io import StringIO

from rich.console import Console

from valeqa.logging import RunLogger, build_run_logger, escape_workflow_data, escape_workflow_property


def _logger(**kwargs: object) -> tuple[RunLogger, StringIO]:
    buffer = StringIO()
    console = Console(file=buffer, no_color=True, highlight=False, width=200)
    return RunLogger(console=console, use_color=False, **kwargs), buffer  # type: ignore[arg-type]


def test_escape_workflow_values() -> None:
    assert escape_workflow_data("50%\r\nnext") == "50%25%0D%0Anext"
    assert escape_workflow_property("a:b,c\n") == "a%3Ab%2Cc%0A"


def test_debug_is_gated() -> None:
    quiet, quiet_buffer = _logger()
    loud, loud_buffer = _logger(debug_enabled=True)

    quiet.debug("alerts total=3")
    loud.debug("alerts total=3")

    assert quiet_buffer.getvalue() == ""
    assert loud_buffer.getvalue().strip() == "[debug] alerts total=3"


def test_emoji_prefix_is_optional() -> None:
    plain, plain_buffer = _logger(use_emoji=False)
    fancy, fancy_buffer = _logger()

    plain.ok("done")
    fancy.ok("done")

    assert plain_buffer.getvalue() == "done\n"
    assert fancy_buffer.getvalue().startswith("✅")


def test_warnings_become_workflow_commands_on_github() -> None:
    workflow = StringIO()
    logger, buffer = _logger(use_emoji=False, github=True, workflow_stream=workflow)

    logger.warn("Failed to fetch remote config: 404.")
    logger.fail("boom\nsecond line")
    logger.info("not mirrored")

    assert workflow.getvalue().splitlines() == [
        "::warning::Failed to fetch remote config: 404.",
        "::error::boom%0Asecond line",
    ]
    assert "not mirrored" in buffer.getvalue()


def test_build_run_logger_honours_flags() -> None:
    console = Console(file=StringIO())

    logger = build_run_logger(emoji=False, debug=True, no_color=True, console=console)

    assert logger.console is console
    assert logger.use_emoji is False
    assert logger.use_color is False
    assert logger.debug_enabled is True
    assert logger.github is False
