"""JsonFileStore: flat JSON files under the site's data directory.

Layout:
  <data_dir>/state.json          the last-processed pointer
  <data_dir>/builds/<slug>.json  one immutable record per processed build
  <data_dir>/index.json          newest-first list of builds for the static site;
                                 each entry's "path" is relative to <data_dir>

The files are meant to be committed back to the repository by the scheduled
workflow, so every write goes through a temp file and os.replace() to avoid
leaving a truncated file behind if the process dies mid-write.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from buildnotes_store.base import BaseStore
from buildnotes_store.models import BuildRecord, StateRecord, build_from_dict, build_to_dict

logger = logging.getLogger(__name__)

_STATE_FILENAME = "state.json"
_INDEX_FILENAME = "index.json"
_BUILDS_DIRNAME = "builds"


def _write_json_atomic(path: Path, payload) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
        f.write("\n")
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)


def _read_json(path: Path):
    """Return parsed JSON, or None when the file is missing or unreadable."""
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return None


class JsonFileStore(BaseStore):
    """Stores state and build history as JSON files in ``data_dir``."""

    def __init__(self, data_dir: str = "data"):
        self._root = Path(data_dir)

    @property
    def builds_dir(self) -> Path:
        return self._root / _BUILDS_DIRNAME

    def load_state(self, repo: str) -> StateRecord | None:
        data = _read_json(self._root / _STATE_FILENAME)
        if not isinstance(data, dict):
            return None
        # Older state files used camelCase keys.
        sha = data.get("last_processed_sha") or data.get("lastProcessedBuildSha")
        if not sha:
            return None
        if data.get("repo") and data["repo"] != repo:
            logger.info("Saved state belongs to %s, not %s; treating as no state.", data["repo"], repo)
            return None
        return StateRecord(
            repo=repo,
            last_processed_sha=sha,
            last_processed_version=data.get("last_processed_version") or data.get("lastProcessedVersion"),
            last_processed_at=data.get("last_processed_at") or data.get("lastProcessedAt") or "",
            default_branch=data.get("default_branch") or data.get("defaultBranch") or "main",
        )

    def save_state(self, state: StateRecord) -> None:
        _write_json_atomic(
            self._root / _STATE_FILENAME,
            {
                "repo": state.repo,
                "default_branch": state.default_branch,
                "last_processed_sha": state.last_processed_sha,
                "last_processed_version": state.last_processed_version,
                "last_processed_at": state.last_processed_at,
            },
        )

    def save_build(self, record: BuildRecord) -> None:
        _write_json_atomic(self.builds_dir / f"{record.slug}.json", build_to_dict(record))
        self._write_index(record.repo)

    def list_builds(self, repo: str) -> list[BuildRecord]:
        if not self.builds_dir.exists():
            return []
        records = []
        for path in self.builds_dir.glob("*.json"):
            data = _read_json(path)
            if isinstance(data, dict) and data.get("repo") == repo:
                records.append(build_from_dict(data))
        return sorted(records, key=lambda r: (r.built_at, r.slug))

    def _write_index(self, repo: str) -> None:
        runs = [
            {
                "id": r.slug,
                "title": r.title,
                "path": f"{_BUILDS_DIRNAME}/{r.slug}.json",
                "version": r.version,
                "buildSha": r.build_sha,
                "changes": len(r.changes),
            }
            for r in reversed(self.list_builds(repo))
        ]
        _write_json_atomic(self._root / _INDEX_FILENAME, {"repo": repo, "runs": runs})
