# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``valeqa version``: report valeqa and Vale versions."""

from __future__ import annotations

import typer

from ... import __version__
from ...errors import ValeqaError
from ...linter import ValeRunner
from ..options import VALE_BINARY_OPTION


def version_command(vale_binary: VALE_BINARY_OPTION = None) -> None:
    """Print the valeqa version and the version reported by ``vale -v``."""

    typer.echo(f"valeqa {__version__}")
    try:
        vale_version = ValeRunner(vale_binary or "vale").version()
    except ValeqaError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"vale {vale_version or 'unknown'}")


def register(app: typer.Typer) -> None:
    """Register the ``version`` command on ``app``."""

    app.command("version")(version_command)


__all__ = ["register", "version_command"]
