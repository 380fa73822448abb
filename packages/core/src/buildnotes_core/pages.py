"""Markdown pages and release artifacts produced from a RunSnapshot.

Build pages are named ``YYYY-MM-DD_HH-mmZ_<version>_<short-sha>.md`` so a
reverse lexical sort of the builds directory is newest-first.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from buildnotes_core.models import RunSnapshot, short_sha
from buildnotes_core.utils.markdown import md_escape_inline

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"^\d{4}-\d{2}-\d{2}_")
_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.\d+")
_UI_TIME_RE = re.compile(r"^([0-9]{2})-([0-9]{2})Z$")

_EMPTY_INDEX_TEXT = "Build pages will appear here after the workflow generates the first build."

_HOME_PAGE = """---
title: Builds
---

<script setup>
import { onMounted } from 'vue'
import { withBase } from 'vitepress'

onMounted(() => {
  window.location.replace(withBase('/builds/'))
})
</script>

Redirecting to **[Builds](./builds/)**...
"""


@dataclass(frozen=True)
class UtcParts:
    date: str  # 2026-01-09
    time: str  # 14-05Z
    display: str  # 2026-01-09 14:05 UTC


def format_utc_parts(when: datetime) -> UtcParts:
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    d = when.astimezone(timezone.utc)
    return UtcParts(
        date=d.strftime("%Y-%m-%d"),
        time=d.strftime("%H-%MZ"),
        display=d.strftime("%Y-%m-%d %H:%M UTC"),
    )


def format_time_for_ui(time_part: str) -> str:
    """``00-50Z`` → ``00:50Z``; anything else is returned unchanged."""
    m = _UI_TIME_RE.match(str(time_part or ""))
    if not m:
        return str(time_part or "")
    return f"{m.group(1)}:{m.group(2)}Z"


def build_slug(parts: UtcParts, version: str, sha: str) -> str:
    return f"{parts.date}_{parts.time}_{version}_{short_sha(sha)}"


def label_from_slug(slug: str) -> str:
    pieces = str(slug or "").split("_")
    if len(pieces) >= 2 and pieces[0] and pieces[1]:
        return f"{pieces[0]} - {format_time_for_ui(pieces[1])}"
    return str(slug or "")


def build_title(parts: UtcParts) -> str:
    return f"{parts.date} - {format_time_for_ui(parts.time)}"


def release_tag(prefix: str, version: str, parts: UtcParts, sha: str) -> str:
    stamp = f"{parts.date.replace('-', '')}-{parts.time.replace('-', '')}"
    return f"{prefix}/{version}/{stamp}/{short_sha(sha)}"


def release_title(name: str, version: str, parts: UtcParts) -> str:
    return f"{name} {version} - {parts.display}"


def build_page_markdown(snapshot: RunSnapshot) -> str:
    repo = snapshot.repo
    previous = snapshot.build_range.previous.sha
    target = snapshot.build_range.target.sha
    title = md_escape_inline(snapshot.title)

    warning = ""
    if snapshot.was_truncated:
        warning = (
            f"\n> ⚠️ GitHub compare returned {snapshot.listed_commits} of {snapshot.total_commits} commits "
            "for this range. This changelog may be incomplete.\n"
        )

    return f"""---
title: "{title}"
---

# {title}

Commit: [{short_sha(target)}](https://github.com/{repo}/commit/{target}) · Previous: [{short_sha(previous)}](https://github.com/{repo}/commit/{previous}) · Compare: [GitHub]({snapshot.compare_url})
Version: `{md_escape_inline(snapshot.version)}` · Branch: `{md_escape_inline(snapshot.default_branch)}` · Upstream: [{md_escape_inline(repo)}](https://github.com/{repo})
{warning}

{snapshot.notes.strip()}
"""  # noqa: E501


def write_build_page(snapshot: RunSnapshot, docs_dir: str | Path) -> Path:
    builds_dir = Path(docs_dir) / "builds"
    builds_dir.mkdir(parents=True, exist_ok=True)
    path = builds_dir / f"{snapshot.slug}.md"
    path.write_text(build_page_markdown(snapshot), encoding="utf-8")
    return path


def _minor_group(slug: str) -> str:
    for piece in slug.split("_"):
        m = _VERSION_RE.match(piece)
        if m:
            return f"{m.group(1)}.{m.group(2)}"
    return "Other"


def _group_sort_key(group: str):
    if group == "Other":
        return (1, ())
    # Negated so that 1.110 sorts ahead of 1.99 in an ascending sort.
    return (0, tuple(-int(p) for p in group.split(".")))


def rebuild_build_indexes(docs_dir: str | Path) -> Path:
    """Regenerate ``builds/index.md`` (grouped by minor version) and the home page."""
    docs = Path(docs_dir)
    builds_dir = docs / "builds"
    builds_dir.mkdir(parents=True, exist_ok=True)

    slugs = sorted(
        (p.stem for p in builds_dir.glob("*.md") if p.name != "index.md" and _SLUG_RE.match(p.stem)),
        reverse=True,
    )

    groups: dict[str, list[str]] = {}
    for slug in slugs:
        groups.setdefault(_minor_group(slug), []).append(slug)

    lines: list[str] = []
    if not slugs:
        lines.append(_EMPTY_INDEX_TEXT)
    else:
        for group in sorted(groups, key=_group_sort_key):
            lines.append(f"## {group}")
            for slug in groups[group]:
                # Relative links so the site also works under a project base path.
                lines.append(f"- [{md_escape_inline(label_from_slug(slug))}](./{slug})")
            lines.append("")

    index_path = builds_dir / "index.md"
    index_path.write_text("# Builds\n\n" + "\n".join(lines).strip() + "\n", encoding="utf-8")
    (docs / "index.md").write_text(_HOME_PAGE, encoding="utf-8")
    logger.debug("Rebuilt builds index with %d page(s)", len(slugs))
    return index_path


def write_release_artifacts(snapshot: RunSnapshot, out_dir: str | Path, page_file: str) -> tuple[Path, Path]:
    """Write the release body and metadata a CI job turns into a GitHub Release."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    notes_path = out / "release-notes.md"
    notes_path.write_text(snapshot.notes.strip() + "\n", encoding="utf-8")

    meta = {
        "tag": snapshot.tag,
        "title": snapshot.release_title,
        "buildSha": snapshot.build_range.target.sha,
        "previousSha": snapshot.build_range.previous.sha,
        "version": snapshot.version,
        "slug": snapshot.slug,
        "notesFile": str(notes_path),
        "pageFile": page_file,
    }
    meta_path = out / "build.json"
    meta_path.write_text(json.dumps(meta, indent=2) + "\n", encoding="utf-8")
    return notes_path, meta_path
