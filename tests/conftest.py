# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from io import StringIO
from pathlib import Path
from subprocess import CompletedProcess

import pytest
from rich.console import Console

from valeqa.linter import LintRun
from valeqa.logging import RunLogger
from valeqa.process import CommandOptions


@dataclass(slots=True)
class LogCapture:
    """Logger writing plain text into an in-memory buffer."""

    logger: RunLogger
    buffer: StringIO

    @property
    def text(self) -> str:
        return self.buffer.getvalue()


@dataclass(slots=True)
class FakeCommandRunner:
    """Command runner replaying queued ``(returncode, stdout, stderr)`` results."""

    outputs: list[tuple[int, str, str]] = field(default_factory=list)
    calls: list[list[str]] = field(default_factory=list)
    options: list[CommandOptions] = field(default_factory=list)

    def __call__(self, cmd: Sequence[str], options: CommandOptions) -> CompletedProcess[str]:
        self.calls.append(list(cmd))
        self.options.append(options)
        returncode, stdout, stderr = self.outputs.pop(0) if self.outputs else (0, "", "")
        return CompletedProcess(list(cmd), returncode, stdout, stderr)


@dataclass(slots=True)
class FakeInstaller:
    """Style installer recording calls and returning per-name exit codes."""

    statuses: dict[str, int] = field(default_factory=dict)
    calls: list[tuple[str, str, tuple[str, ...]]] = field(default_factory=list)

    def install(self, name: str, source: str, config_flags: Sequence[str] = ()) -> LintRun:
        self.calls.append((name, source, tuple(config_flags)))
        status = self.statuses.get(name, 0)
        return LintRun(returncode=status, stdout="", stderr=f"E100 cannot install {name}" if status else "")


@pytest.fixture
def log_capture() -> LogCapture:
    """Return a debug-enabled logger whose output is captured as plain text."""

    buffer = StringIO()
    console = Console(file=buffer, no_color=True, highlight=False, soft_wrap=True, width=240)
    logger = RunLogger(console=console, use_emoji=False, use_color=False, debug_enabled=True)
    return LogCapture(logger=logger, buffer=buffer)


@pytest.fixture
def fake_runner() -> FakeCommandRunner:
    """Return an empty command runner fake."""

    return FakeCommandRunner()


@pytest.fixture
def installer() -> FakeInstaller:
    """Return a style installer fake where every install succeeds."""

    return FakeInstaller()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Return a checkout containing a handful of Markdown files."""

    root = tmp_path / "repo"
    (root / "docs").mkdir(parents=True)
    (root / "README.md").write_text("# Title\n\nSome text.\n", encoding="utf-8")
    (root / "docs" / "guide.md").write_text("Guide\n\nMore text.\n", encoding="utf-8")
    (root / "docs" / "faq.md").write_text("FAQ\n", encoding="utf-8")
    return root
