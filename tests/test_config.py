# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for run option normalisation."""

from __future__ import annotations

import json
import urllib.error
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from valeqa.config import (
    FileSelectionMode,
    RawOptions,
    StylePackage,
    build_raw_options,
    fetch_config,
    load_pyproject_options,
    parse_style_packages,
    resolve_file_selection,
    resolve_run_config,
)
from valeqa.errors import ConfigError

if TYPE_CHECKING:
    from conftest import LogCapture


def _fetch_ok(locator: str) -> bytes:
    return b"StylesPath = styles\nMinAlertLevel = suggestion\n"


def _fetch_fails(locator: str) -> bytes:
    raise urllib.error.URLError("name resolution failed")


def test_style_names_derive_from_last_segment() -> None:
    packages = parse_style_packages("https://x/y/Foo.zip\n\n  \nbar.zip\nMicrosoft\n")

    assert packages == (
        StylePackage("Foo", "https://x/y/Foo.zip"),
        StylePackage("bar", "bar.zip"),
        StylePackage("Microsoft", "Microsoft"),
    )
    assert parse_style_packages("") == ()


@pytest.mark.parametrize(
    ("only_modified", "files"),
    [("true", "all"), ("", "docs"), ("False", "all"), ("false", "__onlyModified")],
)
def test_only_modified_mode_wins(
    workspace: Path,
    log_capture: LogCapture,
    only_modified: str,
    files: str,
) -> None:
    raw = RawOptions(files=files, only_annotate_modified_lines=only_modified)

    mode, targets = resolve_file_selection(raw, workspace, log_capture.logger)

    assert mode is FileSelectionMode.ONLY_MODIFIED
    assert targets == ()


def test_all_mode(workspace: Path, log_capture: LogCapture) -> None:
    raw = RawOptions(files="all", only_annotate_modified_lines="false")

    assert resolve_file_selection(raw, workspace, log_capture.logger) == (FileSelectionMode.ALL, ())


def test_explicit_path_requires_existing_path(workspace: Path, log_capture: LogCapture) -> None:
    existing = RawOptions(files="docs/guide.md", only_annotate_modified_lines="false")
    missing = RawOptions(files="docs/missing.md", only_annotate_modified_lines="false")

    assert resolve_file_selection(existing, workspace, log_capture.logger) == (
        FileSelectionMode.EXPLICIT_PATH,
        ("docs/guide.md",),
    )
    assert resolve_file_selection(missing, workspace, log_capture.logger) == (FileSelectionMode.ALL, ())
    assert "User-specified path (docs/missing.md) is invalid; falling back to 'all'." in log_capture.text


def test_explicit_list_from_json_array(workspace: Path, log_capture: LogCapture) -> None:
    raw = RawOptions(files='["README.md", "docs/guide.md"]', only_annotate_modified_lines="false")

    assert resolve_file_selection(raw, workspace, log_capture.logger) == (
        FileSelectionMode.EXPLICIT_LIST,
        ("README.md", "docs/guide.md"),
    )
    assert "invalid" not in log_capture.text


@pytest.mark.parametrize("files", ["[not json", '{"a": 1}', "[1, 2]", ""])
def test_malformed_file_list_falls_back_to_all(workspace: Path, log_capture: LogCapture, files: str) -> None:
    raw = RawOptions(files=files, only_annotate_modified_lines="false")

    assert resolve_file_selection(raw, workspace, log_capture.logger) == (FileSelectionMode.ALL, ())
    assert "falling back to 'all'" in log_capture.text


def test_external_config_is_scoped_to_context(workspace: Path, log_capture: LogCapture, tmp_path: Path) -> None:
    raw = RawOptions(config="https://example.com/.vale.ini")

    with resolve_run_config(raw, workspace, log_capture.logger, fetcher=_fetch_ok) as run_config:
        config_path = run_config.external_config_path
        assert config_path is not None
        assert config_path.read_text(encoding="utf-8").startswith("StylesPath = styles")

    assert not config_path.exists()
    assert "Successfully fetched remote config." in log_capture.text


def test_external_config_removed_when_body_raises(workspace: Path, log_capture: LogCapture) -> None:
    raw = RawOptions(config="https://example.com/.vale.ini")
    captured: list[Path] = []

    with pytest.raises(RuntimeError):
        with resolve_run_config(raw, workspace, log_capture.logger, fetcher=_fetch_ok) as run_config:
            assert run_config.external_config_path is not None
            captured.append(run_config.external_config_path)
            raise RuntimeError("boom")

    assert captured and not captured[0].exists()


def test_fetch_failure_warns_and_continues(workspace: Path, log_capture: LogCapture) -> None:
    raw = RawOptions(config="https://example.invalid/.vale.ini")

    with resolve_run_config(raw, workspace, log_capture.logger, fetcher=_fetch_fails) as run_config:
        assert run_config.external_config_path is None

    assert "Failed to fetch remote config: <urlopen error name resolution failed>." in log_capture.text


def test_write_failure_warns_and_continues(workspace: Path, log_capture: LogCapture, tmp_path: Path) -> None:
    raw = RawOptions(config="https://example.com/.vale.ini")

    with resolve_run_config(
        raw,
        workspace,
        log_capture.logger,
        fetcher=_fetch_ok,
        temp_dir=tmp_path / "does-not-exist",
    ) as run_config:
        assert run_config.external_config_path is None

    assert "Failed to write config:" in log_capture.text


def test_run_config_collects_every_option(workspace: Path, log_capture: LogCapture) -> None:
    raw = RawOptions(
        styles="https://x/y/Foo.zip\nbar.zip",
        files='["README.md"]',
        only_annotate_modified_lines="false",
        debug="true",
        vale_binary="/opt/vale",
        timeout=30,
    )

    with resolve_run_config(raw, workspace, log_capture.logger, fetcher=_fetch_fails) as run_config:
        assert run_config.external_config_path is None
        assert [package.name for package in run_config.style_packages] == ["Foo", "bar"]
        assert run_config.file_selection_mode is FileSelectionMode.EXPLICIT_LIST
        assert run_config.explicit_targets == ("README.md",)
        assert run_config.debug is True
        assert run_config.vale_binary == "/opt/vale"
        assert run_config.timeout == 30.0
        assert not run_config.only_modified


def test_fetch_config_reads_local_paths(tmp_path: Path) -> None:
    source = tmp_path / "shared.ini"
    source.write_bytes(b"MinAlertLevel = warning\n")

    assert fetch_config(str(source)) == b"MinAlertLevel = warning\n"
    assert fetch_config(source.as_uri()) == b"MinAlertLevel = warning\n"
    with pytest.raises(OSError):
        fetch_config(str(tmp_path / "missing.ini"))


def test_pyproject_defaults_are_overridden_by_explicit_values(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        """
[tool.valeqa]
files = ["docs/a.md", "docs/b.md"]
only-annotate-modified-lines = false
styles = ["Google", "https://x/y/Foo.zip"]
""",
        encoding="utf-8",
    )

    assert load_pyproject_options(tmp_path)["only_annotate_modified_lines"] is False
    raw = build_raw_options(tmp_path, {"files": None, "debug": "true"})

    assert raw.files == '["docs/a.md", "docs/b.md"]'
    assert raw.only_annotate_modified_lines == "false"
    assert raw.styles == "Google\nhttps://x/y/Foo.zip"
    assert raw.debug == "true"
    assert build_raw_options(tmp_path, {"files": "all"}).files == "all"


def test_pyproject_files_list_round_trips_to_explicit_list(tmp_path: Path, log_capture: LogCapture) -> None:
    (tmp_path / "a.md").write_text("a\n", encoding="utf-8")
    (tmp_path / "pyproject.toml").write_text(
        '[tool.valeqa]\nfiles = ["a.md"]\nonly_annotate_modified_lines = "false"\n',
        encoding="utf-8",
    )

    raw = build_raw_options(tmp_path)

    assert resolve_file_selection(raw, tmp_path, log_capture.logger) == (FileSelectionMode.EXPLICIT_LIST, ("a.md",))


def test_invalid_pyproject_section_raises(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text('[tool]\nvaleqa = "nope"\n', encoding="utf-8")

    with pytest.raises(ConfigError):
        build_raw_options(tmp_path)


def test_unknown_option_raises(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("[tool.valeqa]\nunknown = 1\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Invalid valeqa options"):
        build_raw_options(tmp_path)


def test_missing_pyproject_yields_defaults(tmp_path: Path) -> None:
    raw = build_raw_options(tmp_path)

    assert raw == RawOptions()
    assert raw.files == "all"
    assert raw.only_annotate_modified_lines == "true"


def test_long_file_list_selects_explicit_list(workspace: Path, log_capture: LogCapture) -> None:
    names = [f"chapter-{index:03d}.md" for index in range(40)]
    for name in names:
        (workspace / name).write_text("text\n", encoding="utf-8")
    raw = RawOptions(files=json.dumps(names), only_annotate_modified_lines="false")

    assert resolve_file_selection(raw, workspace, log_capture.logger) == (FileSelectionMode.EXPLICIT_LIST, tuple(names))


def test_unrepresentable_path_falls_back_to_all(workspace: Path, log_capture: LogCapture) -> None:
    raw = RawOptions(files="docs\x00guide.md", only_annotate_modified_lines="false")

    assert resolve_file_selection(raw, workspace, log_capture.logger) == (FileSelectionMode.ALL, ())
    assert "is invalid; falling back to 'all'." in log_capture.text


def test_unknown_home_directory_warns_and_continues(workspace: Path, log_capture: LogCapture) -> None:
    def _unknown_user(locator: str) -> bytes:
        raise RuntimeError("no such user: valeqa-no-such-user")

    raw = RawOptions(config="~valeqa-no-such-user/.vale.ini")

    with resolve_run_config(raw, workspace, log_capture.logger, fetcher=_unknown_user) as run_config:
        assert run_config.external_config_path is None

    assert "Failed to fetch remote config: no such user: valeqa-no-such-user." in log_capture.text
