# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Normalise loosely-typed run options into an immutable :class:`RunConfig`.

Each option is validated on its own so a malformed value degrades to a
documented fallback (with a warning) instead of corrupting the others.
"""

from __future__ import annotations

import http.client
import json
import os
import tempfile
import tomllib
import urllib.parse
import urllib.request
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import ConfigError
from .logging import RunLogger

ONLY_MODIFIED_SENTINEL: Final[str] = "__onlyModified"
ALL_FILES: Final[str] = "all"
FALSE_LITERAL: Final[str] = "false"
TRUTHY_LITERALS: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
ARCHIVE_EXTENSION: Final[str] = ".zip"
REMOTE_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https", "ftp"})
FETCH_TIMEOUT_SECONDS: Final[float] = 30.0
CONFIG_SUFFIX: Final[str] = ".ini"
PYPROJECT_FILENAME: Final[str] = "pyproject.toml"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "valeqa"

ConfigFetcher = Callable[[str], bytes | str]


class FileSelectionMode(str, Enum):
    """Strategies deciding which files Vale is asked to lint."""

    ONLY_MODIFIED = "only-modified"
    ALL = "all"
    EXPLICIT_PATH = "explicit-path"
    EXPLICIT_LIST = "explicit-list"


@dataclass(frozen=True, slots=True)
class StylePackage:
    """Vale style package identified by an install name and its source."""

    name: str
    source: str

    @classmethod
    def from_source(cls, source: str) -> StylePackage:
        """Derive the install name from the last path segment of ``source``.

        Example:
            ``https://x/y/Foo.zip`` installs as ``Foo``.
        """

        segment = source.split("/")[-1]
        return cls(name=segment.split(ARCHIVE_EXTENSION)[0], source=source)


def _coerce_option_text(value: object, *, list_as_json: bool = False) -> object:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        if list_as_json or not all(isinstance(item, str) for item in value):
            return json.dumps(value)
        return "\n".join(value)
    return value


class RawOptions(BaseModel):
    """Raw option strings exactly as a workflow or CLI supplies them."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    config: str = ""
    styles: str = ""
    files: str = ALL_FILES
    only_annotate_modified_lines: str = "true"
    debug: str = "false"
    vale_binary: str = "vale"
    timeout: float | None = None

    @field_validator("config", "styles", "only_annotate_modified_lines", "debug", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> object:
        """Accept booleans and string lists from TOML tables as option text."""

        return _coerce_option_text(value)

    @field_validator("files", mode="before")
    @classmethod
    def _coerce_files(cls, value: object) -> object:
        """Encode a TOML array of paths as the JSON list form of ``files``."""

        return _coerce_option_text(value, list_as_json=True)


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Normalised configuration for a single valeqa run."""

    external_config_path: Path | None = None
    style_packages: tuple[StylePackage, ...] = ()
    file_selection_mode: FileSelectionMode = FileSelectionMode.ALL
    explicit_targets: tuple[str, ...] = ()
    debug: bool = False
    vale_binary: str = "vale"
    timeout: float | None = None

    @property
    def only_modified(self) -> bool:
        """Return ``True`` when findings are restricted to modified files and lines."""

        return self.file_selection_mode is FileSelectionMode.ONLY_MODIFIED


def is_truthy(value: str) -> bool:
    """Return ``True`` when ``value`` is a recognised truthy literal."""

    return value.strip().lower() in TRUTHY_LITERALS


def parse_style_packages(raw: str) -> tuple[StylePackage, ...]:
    """Return style packages for each non-blank line of ``raw``, in order."""

    return tuple(StylePackage.from_source(line.strip()) for line in raw.split("\n") if line.strip())


def _is_existing_path(workspace: Path, candidate: str) -> bool:
    try:
        return (workspace / candidate).exists()
    except (OSError, ValueError):
        # Over-long names or embedded NULs cannot name a file on disk.
        return False


def resolve_file_selection(
    raw: RawOptions,
    workspace: Path,
    logger: RunLogger,
) -> tuple[FileSelectionMode, tuple[str, ...]]:
    """Decide the file-selection mode and any explicit targets.

    Args:
        raw: Raw options carrying the ``files`` value and the modified-lines toggle.
        workspace: Directory that relative ``files`` paths are resolved against.
        logger: Logger receiving the invalid-path warning.

    Returns:
        tuple[FileSelectionMode, tuple[str, ...]]: Selected mode and its targets.
    """

    files = raw.files
    if raw.only_annotate_modified_lines != FALSE_LITERAL or files == ONLY_MODIFIED_SENTINEL:
        return FileSelectionMode.ONLY_MODIFIED, ()
    if files == ALL_FILES:
        return FileSelectionMode.ALL, ()
    if files and _is_existing_path(workspace, files):
        return FileSelectionMode.EXPLICIT_PATH, (files,)
    try:
        parsed = json.loads(files)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, list) and all(isinstance(item, str) for item in parsed):
        return FileSelectionMode.EXPLICIT_LIST, tuple(parsed)
    logger.warn(f"User-specified path ({files}) is invalid; falling back to 'all'.")
    return FileSelectionMode.ALL, ()


def fetch_config(locator: str) -> bytes:
    """Return the bytes of the configuration at ``locator``.

    ``locator`` may be an HTTP(S) URL, a ``file://`` URL, or a local path.

    Raises:
        OSError: If the resource cannot be read (``urllib`` errors included).
        ValueError: If the locator is not a usable URL.
        RuntimeError: If a ``~user`` prefix names an unknown user.
    """

    scheme = urllib.parse.urlparse(locator).scheme.lower()
    if scheme in REMOTE_SCHEMES or scheme == "file":
        with urllib.request.urlopen(locator, timeout=FETCH_TIMEOUT_SECONDS) as response:  # nosec B310
            return response.read()
    return Path(locator).expanduser().read_bytes()


def _write_temporary_config(body: bytes, directory: Path | None) -> Path:
    handle, name = tempfile.mkstemp(prefix="valeqa-", suffix=CONFIG_SUFFIX, dir=directory)
    path = Path(name)
    try:
        with os.fdopen(handle, "wb") as stream:
            stream.write(body)
    except OSError:
        path.unlink(missing_ok=True)
        raise
    return path


@contextmanager
def resolve_run_config(
    raw: RawOptions,
    workspace: Path,
    logger: RunLogger,
    *,
    fetcher: ConfigFetcher = fetch_config,
    temp_dir: Path | None = None,
) -> Iterator[RunConfig]:
    """Yield the :class:`RunConfig` for ``raw``, scoping any fetched config file.

    The external configuration is written to a temporary file that is removed
    when the context exits, whatever the exit path.

    Args:
        raw: Raw options to normalise.
        workspace: Repository checkout the run operates on.
        logger: Logger receiving warnings and debug output.
        fetcher: Callable returning the external configuration body.
        temp_dir: Directory for the temporary config file (system default when ``None``).

    Yields:
        RunConfig: Immutable configuration for the run.
    """

    config_path: Path | None = None
    try:
        if raw.config:
            config_path = _materialise_external_config(raw.config, logger, fetcher=fetcher, temp_dir=temp_dir)
        mode, targets = resolve_file_selection(raw, workspace, logger)
        run_config = RunConfig(
            external_config_path=config_path,
            style_packages=parse_style_packages(raw.styles),
            file_selection_mode=mode,
            explicit_targets=targets,
            debug=is_truthy(raw.debug),
            vale_binary=raw.vale_binary,
            timeout=raw.timeout,
        )
        logger.debug(
            f"resolved configuration mode={mode.value} styles={len(run_config.style_packages)} "
            f"config={config_path or '-'}"
        )
        yield run_config
    finally:
        if config_path is not None:
            config_path.unlink(missing_ok=True)


def _materialise_external_config(
    locator: str,
    logger: RunLogger,
    *,
    fetcher: ConfigFetcher,
    temp_dir: Path | None,
) -> Path | None:
    logger.debug(f"Downloading external config '{locator}' ...")
    try:
        body = fetcher(locator)
    except (OSError, ValueError, RuntimeError, http.client.HTTPException) as exc:
        logger.warn(f"Failed to fetch remote config: {exc}.")
        return None
    payload = body.encode("utf-8") if isinstance(body, str) else body
    try:
        path = _write_temporary_config(payload, temp_dir)
    except OSError as exc:
        logger.warn(f"Failed to write config: {exc}.")
        return None
    logger.debug("Successfully fetched remote config.")
    return path


def load_pyproject_options(workspace: Path) -> dict[str, Any]:
    """Return the ``[tool.valeqa]`` table from ``workspace/pyproject.toml``.

    Raises:
        ConfigError: If the document cannot be parsed or the table is malformed.
    """

    path = workspace / PYPROJECT_FILENAME
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Unable to read {path}: {exc}") from exc
    tool_section = data.get(PYPROJECT_TOOL_KEY)
    if not isinstance(tool_section, Mapping):
        return {}
    section = tool_section.get(PYPROJECT_SECTION_KEY)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"[tool.{PYPROJECT_SECTION_KEY}] in {path} must be a table")
    return {str(key).replace("-", "_"): value for key, value in section.items()}


def build_raw_options(workspace: Path, overrides: Mapping[str, object | None] | None = None) -> RawOptions:
    """Merge defaults, ``[tool.valeqa]`` settings, and explicit overrides.

    Overrides whose value is ``None`` are treated as unset.

    Raises:
        ConfigError: If the merged options fail validation.
    """

    merged: dict[str, Any] = dict(load_pyproject_options(workspace))
    merged.update({key: value for key, value in (overrides or {}).items() if value is not None})
    try:
        return RawOptions.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid valeqa options: {exc}") from exc


__all__ = [
    "ALL_FILES",
    "ConfigFetcher",
    "FileSelectionMode",
    "ONLY_MODIFIED_SENTINEL",
    "RawOptions",
    "RunConfig",
    "StylePackage",
    "build_raw_options",
    "fetch_config",
    "is_truthy",
    "load_pyproject_options",
    "parse_style_packages",
    "resolve_file_selection",
    "resolve_run_config",
]
