# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Thin wrapper around the Vale executable."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .errors import LinterExecutionError, LinterNotFoundError
from .process import TIMEOUT_RETURNCODE, CommandOptions, CommandRunner, run_command

VERSION_FLAG: Final[str] = "-v"
INSTALL_COMMAND: Final[str] = "install"
HARD_FAILURE_EXIT: Final[int] = 2


@dataclass(frozen=True, slots=True)
class LintRun:
    """Captured result of a single Vale invocation."""

    returncode: int
    stdout: str
    stderr: str


def parse_version(output: str) -> str:
    """Return the last whitespace-separated token of ``vale -v`` output."""

    tokens = output.split()
    return tokens[-1] if tokens else ""


def validate_arguments(arguments: Sequence[str], targets: Sequence[str]) -> None:
    """Ensure ``arguments`` are flags followed by exactly ``targets``.

    Args:
        arguments: Full argument list passed to Vale.
        targets: Positional targets expected to close ``arguments``.

    Raises:
        ValueError: If ``targets`` is empty or does not close ``arguments``, a
            leading argument is not a flag, or a target is empty or would be
            read as a flag.
    """

    if not targets:
        raise ValueError("Vale requires at least one positional target")
    split = len(arguments) - len(targets)
    if split < 0 or tuple(arguments[split:]) != tuple(targets):
        raise ValueError("positional targets must close the Vale argument list")
    for flag in arguments[:split]:
        if not flag.startswith("-"):
            raise ValueError(f"'{flag}' precedes the targets but is not a flag")
    for target in targets:
        if not target:
            raise ValueError("Vale targets must not be empty strings")
        if target.startswith("-"):
            raise ValueError(f"target '{target}' would be read as a flag")


class ValeRunner:
    """Execute Vale sub-commands inside a workspace."""

    def __init__(
        self,
        binary: str = "vale",
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self._binary = binary
        self._options = CommandOptions(cwd=cwd, timeout=timeout)
        self._runner = runner or run_command

    @property
    def binary(self) -> str:
        return self._binary

    def _execute(self, arguments: Sequence[str]) -> LintRun:
        command = [self._binary, *arguments]
        try:
            completed = self._runner(command, self._options)
        except FileNotFoundError as exc:
            raise LinterNotFoundError(f"Vale executable '{self._binary}' was not found: {exc}") from exc
        return LintRun(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

    def version(self) -> str:
        """Return the installed Vale version reported by ``vale -v``."""

        return parse_version(self._execute([VERSION_FLAG]).stdout)

    def install(self, name: str, source: str, config_flags: Sequence[str] = ()) -> LintRun:
        """Run ``vale install`` for one style package.

        Args:
            name: Name the style is installed under.
            source: URL or registry name of the package.
            config_flags: Flags placed before the sub-command so the install
                honours the same configuration as the main run.

        Returns:
            LintRun: Captured result; callers decide whether the status is fatal.
        """

        return self._execute([*config_flags, INSTALL_COMMAND, name, source])

    def run(self, arguments: Sequence[str], targets: Sequence[str]) -> LintRun:
        """Run Vale with the fully resolved ``arguments`` ending in ``targets``.

        Raises:
            ValueError: If ``arguments`` violate the argument grammar.
            LinterExecutionError: If Vale times out or exits with an error.
        """

        validate_arguments(arguments, targets)
        result = self._execute(arguments)
        if result.returncode == TIMEOUT_RETURNCODE:
            raise LinterExecutionError(result.stderr.strip() or "Vale timed out")
        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            raise LinterExecutionError(f"Vale failed: {detail}")
        return result


__all__ = [
    "HARD_FAILURE_EXIT",
    "LintRun",
    "ValeRunner",
    "parse_version",
    "validate_arguments",
]
