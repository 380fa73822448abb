"""Tests for build pages, indexes and release artifacts."""

import json
from datetime import datetime, timezone

from buildnotes_core.models import BuildRange, ChangeRecord, Marker, RunSnapshot
from buildnotes_core.pages import (
    build_page_markdown,
    build_slug,
    build_title,
    format_time_for_ui,
    format_utc_parts,
    label_from_slug,
    rebuild_build_indexes,
    release_tag,
    release_title,
    write_build_page,
    write_release_artifacts,
)

TARGET = "a1b2c3d4e5f6a7b8c9d0a1b2c3d4e5f6a7b8c9d0"
PREVIOUS = "0f9e8d7c6b5a0f9e8d7c6b5a0f9e8d7c6b5a0f9e"
BUILT_AT = datetime(2026, 1, 9, 14, 5, 33, tzinfo=timezone.utc)


def _snapshot(total_commits=12, listed_commits=12, notes="## Highlights\n- **fix:** Thing [#1](u)"):
    parts = format_utc_parts(BUILT_AT)
    return RunSnapshot(
        repo="microsoft/vscode",
        default_branch="main",
        build_range=BuildRange(previous=Marker(PREVIOUS), target=Marker(TARGET)),
        version="1.109.0-insider",
        built_at=BUILT_AT,
        compare_url=f"https://github.com/microsoft/vscode/compare/{PREVIOUS}...{TARGET}",
        total_commits=total_commits,
        listed_commits=listed_commits,
        changes=(ChangeRecord(number=1, title="Thing", merged_at="2026-01-09T13:00:00Z"),),
        notes=notes,
        slug=build_slug(parts, "1.109.0-insider", TARGET),
        tag=release_tag("insiders", "1.109.0-insider", parts, TARGET),
        title=build_title(parts),
        release_title=release_title("VS Code Insiders", "1.109.0-insider", parts),
    )


def _touch_page(builds_dir, slug):
    builds_dir.mkdir(parents=True, exist_ok=True)
    (builds_dir / f"{slug}.md").write_text("# page\n")


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


class TestNaming:
    def test_utc_parts(self):
        parts = format_utc_parts(BUILT_AT)
        assert parts.date == "2026-01-09"
        assert parts.time == "14-05Z"
        assert parts.display == "2026-01-09 14:05 UTC"

    def test_utc_parts_convert_offsets(self):
        from datetime import timedelta

        parts = format_utc_parts(datetime(2026, 1, 10, 1, 5, tzinfo=timezone(timedelta(hours=2))))
        assert (parts.date, parts.time) == ("2026-01-09", "23-05Z")

    def test_naive_datetime_treated_as_utc(self):
        assert format_utc_parts(datetime(2026, 1, 9, 14, 5)).time == "14-05Z"

    def test_slug(self):
        assert _snapshot().slug == "2026-01-09_14-05Z_1.109.0-insider_a1b2c3d"

    def test_title(self):
        assert _snapshot().title == "2026-01-09 - 14:05Z"

    def test_tag(self):
        assert _snapshot().tag == "insiders/1.109.0-insider/20260109-1405Z/a1b2c3d"

    def test_release_title(self):
        assert _snapshot().release_title == "VS Code Insiders 1.109.0-insider - 2026-01-09 14:05 UTC"

    def test_format_time_for_ui(self):
        assert format_time_for_ui("00-50Z") == "00:50Z"
        assert format_time_for_ui("garbage") == "garbage"
        assert format_time_for_ui(None) == ""

    def test_label_from_slug(self):
        assert label_from_slug("2026-01-09_00-50Z_1.109.0-insider_abc1234") == "2026-01-09 - 00:50Z"
        assert label_from_slug("notes") == "notes"


# ---------------------------------------------------------------------------
# Build page
# ---------------------------------------------------------------------------


class TestBuildPage:
    def test_front_matter_and_heading(self):
        page = build_page_markdown(_snapshot())
        assert page.startswith('---\ntitle: "2026-01-09 - 14:05Z"\n---\n')
        assert "\n# 2026-01-09 - 14:05Z\n" in page

    def test_links(self):
        page = build_page_markdown(_snapshot())
        assert f"[a1b2c3d](https://github.com/microsoft/vscode/commit/{TARGET})" in page
        assert f"[0f9e8d7](https://github.com/microsoft/vscode/commit/{PREVIOUS})" in page
        assert f"Compare: [GitHub](https://github.com/microsoft/vscode/compare/{PREVIOUS}...{TARGET})" in page

    def test_metadata_line(self):
        page = build_page_markdown(_snapshot())
        assert "Version: `1.109.0-insider`" in page
        assert "Branch: `main`" in page

    def test_notes_included(self):
        assert build_page_markdown(_snapshot()).rstrip().endswith("- **fix:** Thing [#1](u)")

    def test_no_warning_when_complete(self):
        assert "may be incomplete" not in build_page_markdown(_snapshot())

    def test_truncation_warning(self):
        page = build_page_markdown(_snapshot(total_commits=300, listed_commits=250))
        assert "250 of 300 commits" in page
        assert "may be incomplete" in page

    def test_write_build_page(self, tmp_path):
        path = write_build_page(_snapshot(), tmp_path / "docs")
        assert path == tmp_path / "docs" / "builds" / "2026-01-09_14-05Z_1.109.0-insider_a1b2c3d.md"
        assert path.read_text(encoding="utf-8").startswith("---\n")


# ---------------------------------------------------------------------------
# Indexes
# ---------------------------------------------------------------------------


class TestRebuildIndexes:
    def test_empty_index(self, tmp_path):
        index = rebuild_build_indexes(tmp_path)
        text = index.read_text()
        assert text.startswith("# Builds\n")
        assert "will appear here" in text
        assert (tmp_path / "index.md").exists()

    def test_grouped_by_minor_newest_first(self, tmp_path):
        builds = tmp_path / "builds"
        _touch_page(builds, "2026-01-08_10-00Z_1.109.0-insider_aaaaaaa")
        _touch_page(builds, "2026-01-09_10-00Z_1.109.0-insider_bbbbbbb")
        _touch_page(builds, "2025-12-01_10-00Z_1.108.2-insider_ccccccc")

        text = rebuild_build_indexes(tmp_path).read_text()

        assert text.index("## 1.109") < text.index("## 1.108")
        assert text.index("bbbbbbb") < text.index("aaaaaaa")
        assert "- [2026-01-09 - 10:00Z](./2026-01-09_10-00Z_1.109.0-insider_bbbbbbb)" in text

    def test_minor_groups_sort_numerically(self, tmp_path):
        builds = tmp_path / "builds"
        _touch_page(builds, "2026-01-01_10-00Z_1.99.0-insider_aaaaaaa")
        _touch_page(builds, "2026-02-01_10-00Z_1.110.0-insider_bbbbbbb")
        text = rebuild_build_indexes(tmp_path).read_text()
        assert text.index("## 1.110") < text.index("## 1.99")

    def test_unversioned_pages_grouped_last(self, tmp_path):
        builds = tmp_path / "builds"
        _touch_page(builds, "2026-01-01_10-00Z_unknown_aaaaaaa")
        _touch_page(builds, "2026-01-02_10-00Z_1.109.0_bbbbbbb")
        text = rebuild_build_indexes(tmp_path).read_text()
        assert text.index("## 1.109") < text.index("## Other")

    def test_non_build_pages_ignored(self, tmp_path):
        builds = tmp_path / "builds"
        _touch_page(builds, "README")
        _touch_page(builds, "2026-01-02_10-00Z_1.109.0_bbbbbbb")
        text = rebuild_build_indexes(tmp_path).read_text()
        assert "README" not in text

    def test_rebuild_is_idempotent(self, tmp_path):
        _touch_page(tmp_path / "builds", "2026-01-02_10-00Z_1.109.0_bbbbbbb")
        first = rebuild_build_indexes(tmp_path).read_text()
        second = rebuild_build_indexes(tmp_path).read_text()
        assert first == second


# ---------------------------------------------------------------------------
# Release artifacts
# ---------------------------------------------------------------------------


def test_write_release_artifacts(tmp_path):
    snapshot = _snapshot()
    notes_path, meta_path = write_release_artifacts(snapshot, tmp_path / ".out", page_file="docs/builds/x.md")

    assert notes_path.read_text(encoding="utf-8") == snapshot.notes + "\n"
    meta = json.loads(meta_path.read_text(encoding="utf-8"))
    assert meta["tag"] == snapshot.tag
    assert meta["title"] == snapshot.release_title
    assert meta["buildSha"] == TARGET
    assert meta["previousSha"] == PREVIOUS
    assert meta["version"] == "1.109.0-insider"
    assert meta["slug"] == snapshot.slug
    assert meta["pageFile"] == "docs/builds/x.md"
    assert meta["notesFile"].endswith("release-notes.md")
