"""SQLiteStore: a single local database file instead of a directory of JSON.

Useful when the history is kept as a CI cache rather than committed to the
site repository. Schema:
  state   one row per repository (the last-processed pointer)
  builds  one row per processed build; the change list is stored as JSON to
          keep read paths free of JOINs.
"""

from __future__ import annotations

import json
import sqlite3

from buildnotes_store.base import BaseStore
from buildnotes_store.models import BuildRecord, ChangeEntry, StateRecord


_SCHEMA = """
CREATE TABLE IF NOT EXISTS state (
    repo                    TEXT PRIMARY KEY,
    default_branch          TEXT,
    last_processed_sha      TEXT NOT NULL,
    last_processed_version  TEXT,
    last_processed_at       TEXT
);
CREATE TABLE IF NOT EXISTS builds (
    slug            TEXT PRIMARY KEY,
    repo            TEXT NOT NULL,
    title           TEXT,
    build_sha       TEXT NOT NULL,
    previous_sha    TEXT,
    version         TEXT,
    built_at        TEXT,
    compare_url     TEXT,
    total_commits   INTEGER DEFAULT 0,
    listed_commits  INTEGER DEFAULT 0,
    notes           TEXT,
    generated_at    TEXT,
    changes_json    TEXT DEFAULT '[]'
);
CREATE INDEX IF NOT EXISTS idx_builds_repo ON builds (repo, built_at);
"""


class SQLiteStore(BaseStore):
    """Stores state and build history in a local SQLite database file.

    The database path defaults to `.buildnotes.db` in the current working
    directory. Configure via .buildnotes.yml: `store_path: /path/to/file.db`.
    """

    def __init__(self, db_path: str = ".buildnotes.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def load_state(self, repo: str) -> StateRecord | None:
        row = self._conn.execute("SELECT * FROM state WHERE repo=?", (repo,)).fetchone()
        if row is None:
            return None
        return StateRecord(
            repo=row["repo"],
            last_processed_sha=row["last_processed_sha"],
            last_processed_version=row["last_processed_version"],
            last_processed_at=row["last_processed_at"] or "",
            default_branch=row["default_branch"] or "main",
        )

    def save_state(self, state: StateRecord) -> None:
        self._conn.execute(
            """
            INSERT INTO state (repo, default_branch, last_processed_sha, last_processed_version, last_processed_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(repo) DO UPDATE SET
              default_branch=excluded.default_branch,
              last_processed_sha=excluded.last_processed_sha,
              last_processed_version=excluded.last_processed_version,
              last_processed_at=excluded.last_processed_at
            """,
            (
                state.repo,
                state.default_branch,
                state.last_processed_sha,
                state.last_processed_version,
                state.last_processed_at,
            ),
        )
        self._conn.commit()

    def save_build(self, record: BuildRecord) -> None:
        changes_json = json.dumps(
            [
                {
                    "number": c.number,
                    "title": c.title,
                    "url": c.url,
                    "author": c.author,
                    "merged_at": c.merged_at,
                    "labels": list(c.labels),
                }
                for c in record.changes
            ]
        )
        self._conn.execute(
            """
            INSERT OR REPLACE INTO builds
              (slug, repo, title, build_sha, previous_sha, version, built_at, compare_url,
               total_commits, listed_commits, notes, generated_at, changes_json)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.slug,
                record.repo,
                record.title,
                record.build_sha,
                record.previous_sha,
                record.version,
                record.built_at,
                record.compare_url,
                record.total_commits,
                record.listed_commits,
                record.notes,
                record.generated_at,
                changes_json,
            ),
        )
        self._conn.commit()

    def list_builds(self, repo: str) -> list[BuildRecord]:
        rows = self._conn.execute(
            "SELECT * FROM builds WHERE repo=? ORDER BY built_at, slug",
            (repo,),
        ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> BuildRecord:
        changes = [
            ChangeEntry(
                number=c.get("number", 0),
                title=c.get("title", ""),
                url=c.get("url", ""),
                author=c.get("author"),
                merged_at=c.get("merged_at"),
                labels=list(c.get("labels") or []),
            )
            for c in json.loads(row["changes_json"] or "[]")
        ]
        return BuildRecord(
            repo=row["repo"],
            slug=row["slug"],
            title=row["title"] or "",
            build_sha=row["build_sha"],
            previous_sha=row["previous_sha"] or "",
            version=row["version"] or "",
            built_at=row["built_at"] or "",
            compare_url=row["compare_url"] or "",
            total_commits=row["total_commits"],
            listed_commits=row["listed_commits"],
            notes=row["notes"] or "",
            generated_at=row["generated_at"] or "",
            changes=changes,
        )
