"""Persisted state and build history records.

Decoupled from buildnotes_core so the store layer can be used on its own
and buildnotes_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass
class StateRecord:
    """The single "last processed build" pointer for a repository."""

    repo: str
    last_processed_sha: str
    last_processed_version: str | None = None
    last_processed_at: str = ""  # ISO-8601 UTC timestamp
    default_branch: str = "main"


@dataclass
class ChangeEntry:
    """A merged pull request listed in a build record."""

    number: int
    title: str = ""
    url: str = ""
    author: str | None = None
    merged_at: str | None = None
    labels: list[str] = field(default_factory=list)


@dataclass
class BuildRecord:
    """One processed build, written once and never modified afterwards.

    Created by the CLI layer from the RunSnapshot that run_update() returns.
    """

    repo: str
    slug: str
    title: str
    build_sha: str
    previous_sha: str
    version: str
    built_at: str  # ISO-8601 UTC commit timestamp of the build
    compare_url: str
    total_commits: int
    listed_commits: int
    notes: str
    generated_at: str  # ISO-8601 UTC timestamp of the run
    changes: list[ChangeEntry] = field(default_factory=list)

    @property
    def was_truncated(self) -> bool:
        return self.total_commits > self.listed_commits


def build_to_dict(record: BuildRecord) -> dict:
    return asdict(record)


def build_from_dict(d: dict) -> BuildRecord:
    return BuildRecord(
        repo=d.get("repo", ""),
        slug=d.get("slug", ""),
        title=d.get("title", ""),
        build_sha=d.get("build_sha", ""),
        previous_sha=d.get("previous_sha", ""),
        version=d.get("version", ""),
        built_at=d.get("built_at", ""),
        compare_url=d.get("compare_url", ""),
        total_commits=d.get("total_commits", 0),
        listed_commits=d.get("listed_commits", 0),
        notes=d.get("notes", ""),
        generated_at=d.get("generated_at", ""),
        changes=[
            ChangeEntry(
                number=c.get("number", 0),
                title=c.get("title", ""),
                url=c.get("url", ""),
                author=c.get("author"),
                merged_at=c.get("merged_at"),
                labels=list(c.get("labels") or []),
            )
            for c in d.get("changes", [])
        ],
    )
