# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing logging helpers with optional colour, emoji, and workflow-command support."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from typing import Final, TextIO

from rich.console import Console
from rich.text import Text

_INFO_PREFIX: Final[str] = "ℹ️ "
_OK_PREFIX: Final[str] = "✅ "
_WARN_PREFIX: Final[str] = "⚠️ "
_FAIL_PREFIX: Final[str] = "❌ "


def detect_tty() -> bool:
    """Return ``True`` when stdout appears to be backed by a terminal.

    Returns:
        bool: ``True`` when ``sys.stdout`` reports TTY support, ``False`` otherwise.
    """

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


def escape_workflow_data(value: str) -> str:
    """Escape ``value`` for use as the message part of a workflow command."""

    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_workflow_property(value: str) -> str:
    """Escape ``value`` for use as a ``key=value`` workflow command property."""

    return escape_workflow_data(value).replace(":", "%3A").replace(",", "%2C")


@dataclass(slots=True)
class RunLogger:
    """Adapter around a Rich console honouring emoji, colour, and debug preferences.

    When ``github`` is enabled, warnings and failures are also echoed as GitHub
    workflow commands on ``workflow_stream`` so they surface in the job summary.
    """

    console: Console
    use_emoji: bool = True
    use_color: bool = True
    debug_enabled: bool = False
    github: bool = False
    workflow_stream: TextIO | None = None
    _key_value_re: re.Pattern[str] = field(default=re.compile(r"([\w-]+)=(\".*?\"|'.*?'|\S+)"), repr=False)

    def info(self, message: str) -> None:
        """Emit an informational message.

        Args:
            message: Message text to display.
        """

        self._print_line(message, prefix=_INFO_PREFIX, style="cyan")

    def ok(self, message: str) -> None:
        """Emit a success message.

        Args:
            message: Message text to display.
        """

        self._print_line(message, prefix=_OK_PREFIX, style="green")

    def warn(self, message: str) -> None:
        """Emit a warning message; the run continues afterwards.

        Args:
            message: Text describing the warning condition.
        """

        self._print_line(message, prefix=_WARN_PREFIX, style="yellow")
        self._workflow_command("warning", message)

    def fail(self, message: str) -> None:
        """Emit a failure message.

        Args:
            message: Text describing the failure state.
        """

        self._print_line(message, prefix=_FAIL_PREFIX, style="bold red")
        self._workflow_command("error", message)

    def debug(self, message: str) -> None:
        """Emit a debug message when debug logging is enabled.

        Args:
            message: Debug payload rendered with simple ``key=value`` highlighting.
        """

        if not self.debug_enabled:
            return
        text = Text("[debug] ", style="bold cyan")
        cursor = 0
        for match in self._key_value_re.finditer(message):
            start, end = match.span()
            if start > cursor:
                text.append(message[cursor:start], style="dim")
            key, raw_value = match.group(1), match.group(2)
            text.append(key, style="bold magenta")
            text.append("=", style="dim")
            value_style = "bold blue" if key in {"command", "cmd", "args"} else "bold green"
            text.append(raw_value, style=value_style)
            cursor = end
        if cursor < len(message):
            text.append(message[cursor:], style="dim")
        self.console.print(text)

    def _print_line(self, message: str, *, prefix: str, style: str) -> None:
        lead = prefix if self.use_emoji else ""
        text = Text(f"{lead}{message}")
        if self.use_color:
            text.stylize(style)
        self.console.print(text)

    def _workflow_command(self, command: str, message: str) -> None:
        if not self.github:
            return
        stream = self.workflow_stream or sys.stdout
        stream.write(f"::{command}::{escape_workflow_data(message)}\n")
        stream.flush()


def build_run_logger(
    *,
    emoji: bool = True,
    debug: bool = False,
    no_color: bool = False,
    github: bool = False,
    stderr: bool = False,
    console: Console | None = None,
) -> RunLogger:
    """Return a ``RunLogger`` bound to a dedicated Rich console.

    Args:
        emoji: Whether log output may include emoji glyphs.
        debug: Whether debug logging should be enabled.
        no_color: Whether terminal colour output should be disabled.
        github: Whether warnings and failures are mirrored as workflow commands.
        stderr: Whether console output goes to stderr, keeping stdout for reports.
        console: Optional console override, mainly for tests.

    Returns:
        RunLogger: Logger configured with the requested presentation flags.
    """

    color = not no_color and detect_tty()
    resolved_console = console or Console(
        no_color=not color,
        highlight=False,
        emoji=emoji,
        soft_wrap=True,
        stderr=stderr,
    )
    return RunLogger(
        console=resolved_console,
        use_emoji=emoji,
        use_color=color,
        debug_enabled=debug,
        github=github,
    )


__all__ = [
    "RunLogger",
    "build_run_logger",
    "detect_tty",
    "escape_workflow_data",
    "escape_workflow_property",
]
