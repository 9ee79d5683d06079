# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Load the files and line numbers touched by a change.

Three providers are supported: ``git diff`` output from the local checkout, a
saved pull-request files payload, and the GitHub pull-request files API. All of
them normalise into an immutable :class:`ChangeSet`.
"""

from __future__ import annotations

import json
import re
import urllib.error
import urllib.request
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ChangeSourceError
from .process import CommandOptions, CommandRunner, run_command

_DIFF_GIT_HEADER: Final[re.Pattern[str]] = re.compile(r'^diff --git "?a/(?P<old>.+?)"? "?b/(?P<new>.+?)"?$')
_NEW_FILE_HEADER: Final[str] = "+++ "
_DELETED_FILE_HEADER: Final[str] = "deleted file mode"
_HUNK_HEADER: Final[re.Pattern[str]] = re.compile(r"^@@ -\d+(?:,(?P<old>\d+))? \+(?P<start>\d+)(?:,(?P<new>\d+))? @@")
_DEV_NULL_SENTINEL: Final[str] = "/dev/null"
_REMOVED_STATUS: Final[str] = "removed"
_CURRENT_DIRECTORY: Final[str] = "."

GITHUB_API_URL: Final[str] = "https://api.github.com"
PULL_FILES_PAGE_SIZE: Final[int] = 100

UrlOpener = Callable[..., Any]


def normalize_change_path(path: str) -> str:
    """Return ``path`` as repository-relative POSIX text without a ``./`` prefix."""

    normalized = path.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.rstrip("/") if normalized not in {"", "/"} else normalized


def path_within(path: str, target: str) -> bool:
    """Return ``True`` when ``path`` equals ``target`` or lives beneath it."""

    prefix = normalize_change_path(target)
    if prefix in {"", _CURRENT_DIRECTORY}:
        return True
    return path == prefix or path.startswith(f"{prefix}/")


@dataclass(frozen=True, slots=True)
class ChangeRecord:
    """Files touched by a change together with their new or changed line numbers."""

    path: str
    modified_lines: frozenset[int] = frozenset()

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("change record path must be non-empty")
        if any(line < 1 for line in self.modified_lines):
            raise ValueError(f"line numbers for {self.path} must be positive")


class ChangeSet:
    """Immutable collection of :class:`ChangeRecord` values keyed by path.

    Records reported more than once for the same path are merged: the stored
    record carries the union of every reported line number.
    """

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[ChangeRecord] = ()) -> None:
        merged: dict[str, set[int]] = {}
        for record in records:
            key = normalize_change_path(record.path)
            merged.setdefault(key, set()).update(record.modified_lines)
        self._records: dict[str, ChangeRecord] = {
            path: ChangeRecord(path, frozenset(lines)) for path, lines in merged.items()
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[int]]) -> ChangeSet:
        """Build a change set from a ``path -> lines`` mapping."""

        return cls(ChangeRecord(path, frozenset(lines)) for path, lines in mapping.items())

    def __iter__(self) -> Iterator[ChangeRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalize_change_path(path) in self._records

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChangeSet):
            return NotImplemented
        return self._records == other._records

    def __repr__(self) -> str:
        return f"ChangeSet({sorted(self._records)!r})"

    def get(self, path: str) -> ChangeRecord | None:
        """Return the record for ``path`` when present."""

        return self._records.get(normalize_change_path(path))

    def paths(self) -> tuple[str, ...]:
        """Return the recorded paths in sorted order."""

        return tuple(sorted(self._records))

    def existing(self, workspace: Path) -> ChangeSet:
        """Return the records whose path exists on disk beneath ``workspace``."""

        return ChangeSet(record for record in self if (workspace / record.path).exists())

    def restricted_to(self, targets: Sequence[str]) -> ChangeSet:
        """Return the records matching or nested beneath any of ``targets``."""

        return ChangeSet(record for record in self if any(path_within(record.path, target) for target in targets))

    def line_index(self) -> dict[str, frozenset[int]]:
        """Return a ``path -> modified lines`` mapping used to filter findings."""

        return {path: record.modified_lines for path, record in sorted(self._records.items())}


@dataclass(slots=True)
class _HunkCursor:
    """Track the position inside a unified-diff hunk."""

    line: int = 0
    old_left: int = 0
    new_left: int = 0

    @property
    def active(self) -> bool:
        return self.old_left > 0 or self.new_left > 0

    def start(self, match: re.Match[str]) -> None:
        self.line = int(match.group("start"))
        old = match.group("old")
        new = match.group("new")
        self.old_left = int(old) if old is not None else 1
        self.new_left = int(new) if new is not None else 1

    def consume(self, raw: str) -> int | None:
        """Advance past ``raw`` and return its new-file line number when it was added."""

        if raw.startswith("\\"):
            return None
        if raw.startswith("+"):
            added = self.line
            self.line += 1
            self.new_left -= 1
            return added
        if raw.startswith("-"):
            self.old_left -= 1
            return None
        self.line += 1
        self.old_left -= 1
        self.new_left -= 1
        return None


def added_lines(patch: str) -> frozenset[int]:
    """Return the new-file line numbers added by the hunks in ``patch``.

    Args:
        patch: Hunk text without file headers, as found in pull-request payloads.

    Returns:
        frozenset[int]: Line numbers (1-indexed) of added or changed lines.
    """

    cursor = _HunkCursor()
    lines: set[int] = set()
    for raw in patch.splitlines():
        if cursor.active:
            added = cursor.consume(raw)
            if added is not None:
                lines.add(added)
            continue
        if hunk := _HUNK_HEADER.match(raw):
            cursor.start(hunk)
    return frozenset(lines)


@dataclass(slots=True)
class _DiffFile:
    path: str | None
    lines: set[int] = field(default_factory=set)


def parse_unified_diff(text: str) -> ChangeSet:
    """Parse ``git diff`` output into a :class:`ChangeSet`.

    Files deleted by the diff are dropped; renames and mode changes without
    hunks yield a record with no lines.

    Args:
        text: Unified diff produced by ``git diff`` (any context size).

    Returns:
        ChangeSet: Files and added line numbers described by ``text``.
    """

    files: list[_DiffFile] = []
    current: _DiffFile | None = None
    cursor = _HunkCursor()
    for raw in text.splitlines():
        if cursor.active:
            added = cursor.consume(raw)
            if added is not None and current is not None and current.path:
                current.lines.add(added)
            continue
        if header := _DIFF_GIT_HEADER.match(raw):
            current = _DiffFile(header.group("new"))
            files.append(current)
            continue
        if raw.startswith(_DELETED_FILE_HEADER) and current is not None:
            current.path = None
            continue
        if raw.startswith(_NEW_FILE_HEADER):
            target = raw[len(_NEW_FILE_HEADER) :].strip().strip('"')
            path = None if target == _DEV_NULL_SENTINEL else target.removeprefix("b/")
            if current is None or current.path != path:
                current = _DiffFile(path)
                files.append(current)
            continue
        if hunk := _HUNK_HEADER.match(raw):
            cursor.start(hunk)
    return ChangeSet(ChangeRecord(entry.path, frozenset(entry.lines)) for entry in files if entry.path)


class PullRequestFile(BaseModel):
    """Entry of the GitHub "list pull request files" response."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    filename: str = Field(min_length=1)
    status: str = "modified"
    patch: str | None = None


def parse_patch_payload(payload: object) -> ChangeSet:
    """Convert a pull-request files payload into a :class:`ChangeSet`.

    Args:
        payload: Decoded JSON array of pull-request file objects.

    Returns:
        ChangeSet: Files and added line numbers; removed files are skipped.

    Raises:
        ChangeSourceError: If ``payload`` does not match the expected shape.
    """

    if not isinstance(payload, list):
        raise ChangeSourceError("pull request files payload must be a JSON array")
    records: list[ChangeRecord] = []
    for index, item in enumerate(payload):
        try:
            entry = PullRequestFile.model_validate(item)
        except ValidationError as exc:
            raise ChangeSourceError(f"invalid pull request file entry at index {index}: {exc}") from exc
        if entry.status == _REMOVED_STATUS:
            continue
        records.append(ChangeRecord(entry.filename, added_lines(entry.patch or "")))
    return ChangeSet(records)


class ChangeSource(Protocol):
    """Provider returning the change set of the current review."""

    def load(self) -> ChangeSet:
        """Return the change set, raising :class:`ChangeSourceError` on failure."""
        ...


class GitDiffChangeSource:
    """Collect changed lines from ``git diff`` in a local checkout."""

    def __init__(
        self,
        workspace: Path,
        *,
        base_ref: str | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        """Create a git-backed change source.

        Args:
            workspace: Repository checkout used as the git working directory.
            base_ref: Optional reference to diff against using merge-base
                (``<base>...HEAD``) semantics. When omitted the working tree
                is compared with ``HEAD``.
            runner: Optional command runner; defaults to :func:`run_command`.
        """

        self._workspace = workspace
        self._base_ref = base_ref
        self._runner = runner or run_command

    def command(self) -> list[str]:
        """Return the git command used to compute the diff."""

        revision = f"{self._base_ref}...HEAD" if self._base_ref else "HEAD"
        return ["git", "diff", "--unified=0", "--no-color", "--no-ext-diff", revision, "--"]

    def load(self) -> ChangeSet:
        """Run git and parse its diff output.

        Returns:
            ChangeSet: Files and added line numbers reported by git.

        Raises:
            ChangeSourceError: If git is unavailable or exits unsuccessfully.
        """

        cmd = self.command()
        try:
            completed = self._runner(cmd, CommandOptions(cwd=self._workspace))
        except (FileNotFoundError, OSError) as exc:
            raise ChangeSourceError(f"unable to run git: {exc}") from exc
        if completed.returncode != 0:
            detail = (completed.stderr or "").strip() or f"exit status {completed.returncode}"
            raise ChangeSourceError(f"'{' '.join(cmd)}' failed: {detail}")
        return parse_unified_diff(completed.stdout or "")


class PatchPayloadChangeSource:
    """Read a saved pull-request files payload from disk."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> ChangeSet:
        """Decode the payload file.

        Raises:
            ChangeSourceError: If the file is unreadable or not valid JSON.
        """

        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ChangeSourceError(f"unable to read change payload {self._path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ChangeSourceError(f"change payload {self._path} is not valid JSON: {exc}") from exc
        return parse_patch_payload(payload)


class GitHubPullRequestChangeSource:
    """Fetch the files of a pull request from the GitHub REST API."""

    def __init__(
        self,
        repository: str,
        number: int,
        *,
        token: str | None = None,
        api_url: str = GITHUB_API_URL,
        opener: UrlOpener | None = None,
    ) -> None:
        """Create a GitHub API change source.

        Args:
            repository: ``owner/name`` slug of the repository.
            number: Pull request number.
            token: Optional token sent as a bearer credential.
            api_url: Base URL of the REST API (GitHub Enterprise support).
            opener: Callable compatible with :func:`urllib.request.urlopen`.
        """

        self._repository = repository
        self._number = number
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._opener = opener or urllib.request.urlopen

    def _page_url(self, page: int) -> str:
        return (
            f"{self._api_url}/repos/{self._repository}/pulls/{self._number}/files"
            f"?per_page={PULL_FILES_PAGE_SIZE}&page={page}"
        )

    def _request(self, url: str) -> urllib.request.Request:
        headers = {"Accept": "application/vnd.github+json", "User-Agent": "valeqa"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return urllib.request.Request(url, headers=headers)

    def load(self) -> ChangeSet:
        """Page through the pull request files and parse their patches.

        Raises:
            ChangeSourceError: If the API is unreachable or returns malformed data.
        """

        entries: list[object] = []
        page = 1
        while True:
            url = self._page_url(page)
            try:
                with self._opener(self._request(url)) as response:
                    payload = json.loads(response.read().decode("utf-8"))
            except (urllib.error.URLError, OSError) as exc:
                raise ChangeSourceError(f"unable to fetch {url}: {exc}") from exc
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                raise ChangeSourceError(f"malformed response from {url}: {exc}") from exc
            if not isinstance(payload, list):
                raise ChangeSourceError(f"unexpected response from {url}: expected a JSON array")
            entries.extend(payload)
            if len(payload) < PULL_FILES_PAGE_SIZE:
                break
            page += 1
        return parse_patch_payload(entries)


def load_change_set(source: ChangeSource) -> ChangeSet:
    """Return the change set produced by ``source`` without retrying failures."""

    return source.load()


__all__ = [
    "ChangeRecord",
    "ChangeSet",
    "ChangeSource",
    "GitDiffChangeSource",
    "GitHubPullRequestChangeSource",
    "PatchPayloadChangeSource",
    "PullRequestFile",
    "added_lines",
    "load_change_set",
    "normalize_change_path",
    "parse_patch_payload",
    "parse_unified_diff",
    "path_within",
]
