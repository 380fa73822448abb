"""Per-run update pipeline: bootstrap, skip, or process one build."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial

from rich.console import Console

from buildnotes_core.config import load_instructions
from buildnotes_core.errors import EmptyInputError
from buildnotes_core.feed import fetch_feed
from buildnotes_core.gh.repository import (
    change_detail,
    changes_for_revision,
    compare,
    get_commit_date,
    get_default_branch,
    get_repo,
    get_version,
)
from buildnotes_core.models import Feed, Marker, RunSnapshot
from buildnotes_core.pages import build_slug, build_title, format_utc_parts, release_tag, release_title
from buildnotes_core.providers.anthropic import AnthropicNotesWriter
from buildnotes_core.providers.openai import OpenAINotesWriter
from buildnotes_core.resolver import (
    MAX_CHANGES,
    collect_changes,
    compute_range,
    next_persisted_marker,
    resolve_target,
    should_skip,
)

console = Console()
logger = logging.getLogger(__name__)

BOOTSTRAP = "bootstrap"
SKIPPED = "skipped"
PROCESSED = "processed"


@dataclass
class RunOutcome:
    """Result returned by run_update.

    ``marker_to_persist`` is None only for skipped runs; the caller writes it
    (and the snapshot, when present) after run_update returns, so a failed
    run never leaves a half-updated state behind.
    """

    status: str  # "bootstrap" | "skipped" | "processed"
    repo: str
    default_branch: str
    target: Marker
    marker_to_persist: Marker | None = None
    snapshot: RunSnapshot | None = None


def _get_writer(config: dict):
    model = config["model"]
    if model == "openai":
        return OpenAINotesWriter(api_key=config["openai_api_key"], model=config.get("openai_model"))
    if model == "anthropic":
        return AnthropicNotesWriter(api_key=config["anthropic_api_key"], model=config.get("anthropic_model"))
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'openai' or 'anthropic'.")


def _display_version(config: dict, base_version: str) -> str:
    return f"{base_version}{config.get('version_suffix') or ''}"


def run_update(
    config: dict,
    build_sha: str | None = None,
    previous_sha: str | None = None,
    force: bool = False,
    last_processed: Marker | None = None,
    feed: Feed | None = None,
    repo_obj=None,
    writer=None,
) -> RunOutcome:
    """Decide what to do for one build and, when needed, generate its notes.

    ``last_processed`` is the marker read from the store before the run. The
    returned outcome carries the marker to write back; nothing is persisted
    here.
    """
    repo_name = config["target_repo"]
    this_feed = feed if feed is not None else fetch_feed(config["feed_url"])
    target = resolve_target(this_feed, build_sha or this_feed.head.sha, label="Build SHA")

    this_repo = repo_obj if repo_obj is not None else get_repo(repo_name, token=config.get("github_token"))
    default_branch = get_default_branch(this_repo)
    version_file = config.get("version_file", "package.json")

    if last_processed is None:
        version = _display_version(config, get_version(this_repo, target.sha, version_file))
        baseline = Marker(sha=target.sha, version=version)
        console.print(
            f"[cyan]No saved state for {repo_name}. Recording {target.short} ({version}) as the baseline; "
            "notes start with the next build.[/cyan]"
        )
        return RunOutcome(BOOTSTRAP, repo_name, default_branch, target, marker_to_persist=baseline)

    if should_skip(last_processed, this_feed, target, force):
        console.print(
            f"[yellow]Build already processed (state at {last_processed.short}). Skipping {target.short}.[/yellow]"
        )
        console.print("[dim]Tip: re-run with --force to regenerate the page for this build SHA.[/dim]")
        return RunOutcome(SKIPPED, repo_name, default_branch, target)

    build_range = compute_range(this_feed, last_processed, target, previous_sha)
    console.print(f"[cyan]Build range: {build_range.previous.short} → {build_range.target.short}[/cyan]")

    built_at = get_commit_date(this_repo, target.sha)
    parts = format_utc_parts(built_at)
    version = _display_version(config, get_version(this_repo, target.sha, version_file))
    target = Marker(sha=target.sha, version=version, committed_at=built_at)

    comparison = compare(this_repo, build_range.previous.sha, target.sha)
    if comparison.was_truncated:
        logger.warning(
            "Compare commit list appears truncated (%d/%d).",
            len(comparison.revision_ids),
            comparison.total_count,
        )

    max_body = config.get("max_body_chars")
    collection = collect_changes(
        comparison.revision_ids,
        partial(changes_for_revision, this_repo, max_body_chars=max_body),
        partial(change_detail, this_repo, max_body_chars=max_body),
        max_changes=config.get("max_changes", MAX_CHANGES),
        max_workers=config.get("lookup_workers", 1),
    )
    console.print(
        f"  {len(comparison.revision_ids)} commit(s), {len(collection.changes)} merged PR(s)"
        + (f", {len(collection.skipped)} lookup(s) skipped" if collection.is_partial else "")
    )
    if not collection.changes:
        raise EmptyInputError(
            f"No merged PRs found between {build_range.previous.short} and {target.short}; "
            "refusing to generate empty release notes."
        )

    notes_writer = writer if writer is not None else _get_writer(config)
    notes = notes_writer.summarize(
        instructions=load_instructions(config),
        repo=repo_name,
        default_branch=default_branch,
        build_range=build_range,
        compare_url=comparison.html_url,
        changes=collection.changes,
    )

    snapshot = RunSnapshot(
        repo=repo_name,
        default_branch=default_branch,
        build_range=build_range,
        version=version,
        built_at=built_at,
        compare_url=comparison.html_url,
        total_commits=comparison.total_count,
        listed_commits=len(comparison.revision_ids),
        changes=tuple(collection.changes),
        notes=notes,
        slug=build_slug(parts, version, target.sha),
        tag=release_tag(config.get("tag_prefix", "insiders"), version, parts, target.sha),
        title=build_title(parts),
        release_title=release_title(config.get("release_name", ""), version, parts),
        skipped_lookups=tuple(collection.skipped),
    )

    next_marker = next_persisted_marker(last_processed, this_feed, target, force)
    return RunOutcome(
        PROCESSED,
        repo_name,
        default_branch,
        target,
        marker_to_persist=next_marker,
        snapshot=snapshot,
    )
