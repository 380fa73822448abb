"""Value types shared across the pipeline.

The feed is the only source of ordering truth: position 0 is the newest
build, higher positions are older. Timestamps are display metadata only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


def short_sha(sha: str | None) -> str:
    return (sha or "")[:7]


@dataclass(frozen=True)
class Marker:
    """One build in the upstream feed, identified by its commit SHA."""

    sha: str
    version: str | None = None
    committed_at: datetime | None = None

    @property
    def short(self) -> str:
        return short_sha(self.sha)


class Feed:
    """Newest-first, read-only sequence of build markers."""

    def __init__(self, markers):
        self._markers: tuple[Marker, ...] = tuple(markers)
        # A repeated SHA keeps its first (newest) position.
        self._index: dict[str, int] = {}
        for i, m in enumerate(self._markers):
            self._index.setdefault(m.sha, i)

    @classmethod
    def from_shas(cls, shas) -> Feed:
        return cls(Marker(sha=s) for s in shas)

    def __len__(self) -> int:
        return len(self._markers)

    def __iter__(self):
        return iter(self._markers)

    def __contains__(self, sha: str) -> bool:
        return sha in self._index

    @property
    def head(self) -> Marker:
        return self._markers[0]

    @property
    def shas(self) -> list[str]:
        return [m.sha for m in self._markers]

    def get(self, sha: str) -> Marker | None:
        i = self._index.get(sha)
        return None if i is None else self._markers[i]

    def position(self, sha: str) -> int | None:
        """Index of ``sha`` in the feed (0 = newest), or None when absent."""
        return self._index.get(sha)

    def successor(self, sha: str) -> Marker | None:
        """The build directly older than ``sha``, or None for the oldest build."""
        i = self._index.get(sha)
        if i is None or i + 1 >= len(self._markers):
            return None
        return self._markers[i + 1]


@dataclass(frozen=True)
class BuildRange:
    """Everything after ``previous`` up to and including ``target``."""

    previous: Marker
    target: Marker


@dataclass(frozen=True)
class RangeComparison:
    """Commits GitHub's compare endpoint listed for a range."""

    revision_ids: tuple[str, ...]
    total_count: int
    html_url: str

    @property
    def was_truncated(self) -> bool:
        return self.total_count > len(self.revision_ids)


@dataclass(frozen=True)
class ChangeRecord:
    """A pull request associated with one or more commits in a range."""

    number: int
    title: str = ""
    url: str = ""
    author: str | None = None
    merged_at: str | None = None  # ISO-8601 UTC, None when not merged
    labels: tuple[str, ...] = ()
    body: str = ""

    @property
    def merged(self) -> bool:
        return bool(self.merged_at)


@dataclass(frozen=True)
class SkippedLookup:
    key: str  # commit SHA or "#<number>"
    reason: str


@dataclass
class ChangeCollection:
    """Deduplicated changes plus the lookups that failed along the way."""

    changes: list[ChangeRecord] = field(default_factory=list)
    skipped: list[SkippedLookup] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.skipped)


@dataclass(frozen=True)
class RunSnapshot:
    """Immutable result of one processed build.

    Decoupled from buildnotes_store: the CLI maps it to a BuildRecord before
    persisting, so the core never needs to know how records are stored.
    """

    repo: str
    default_branch: str
    build_range: BuildRange
    version: str
    built_at: datetime
    compare_url: str
    total_commits: int
    listed_commits: int
    changes: tuple[ChangeRecord, ...]
    notes: str
    slug: str
    tag: str
    title: str  # page title, e.g. "2026-01-09 - 14:05Z"
    release_title: str
    skipped_lookups: tuple[SkippedLookup, ...] = ()

    @property
    def was_truncated(self) -> bool:
        return self.total_commits > self.listed_commits
