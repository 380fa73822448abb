"""update command — generate release notes for the next upstream build."""

from __future__ import annotations

from datetime import datetime, timezone

import click
from rich.console import Console
from rich.markdown import Markdown

from buildnotes_core.errors import BuildNotesError
from buildnotes_core.models import Marker, RunSnapshot
from buildnotes_core.pages import rebuild_build_indexes, write_build_page, write_release_artifacts
from buildnotes_core.updater import BOOTSTRAP, PROCESSED, RunOutcome, run_update
from buildnotes_store.models import BuildRecord, ChangeEntry, StateRecord

console = Console()

_API_KEY_ENV = {"openai": ("openai_api_key", "OPENAI_API_KEY"), "anthropic": ("anthropic_api_key", "ANTHROPIC_API_KEY")}


def _snapshot_to_record(snapshot: RunSnapshot) -> BuildRecord:
    """Map a RunSnapshot returned by run_update() to a BuildRecord for the store.

    The CLI owns this mapping: buildnotes_core has no store knowledge and
    buildnotes_store has no core knowledge.
    """
    return BuildRecord(
        repo=snapshot.repo,
        slug=snapshot.slug,
        title=snapshot.title,
        build_sha=snapshot.build_range.target.sha,
        previous_sha=snapshot.build_range.previous.sha,
        version=snapshot.version,
        built_at=snapshot.built_at.isoformat(),
        compare_url=snapshot.compare_url,
        total_commits=snapshot.total_commits,
        listed_commits=snapshot.listed_commits,
        notes=snapshot.notes,
        generated_at=datetime.now(timezone.utc).isoformat(),
        changes=[
            ChangeEntry(
                number=c.number,
                title=c.title,
                url=c.url,
                author=c.author,
                merged_at=c.merged_at,
                labels=list(c.labels),
            )
            for c in snapshot.changes
        ],
    )


def _outcome_to_state(outcome: RunOutcome) -> StateRecord:
    marker = outcome.marker_to_persist
    return StateRecord(
        repo=outcome.repo,
        last_processed_sha=marker.sha,
        last_processed_version=marker.version,
        last_processed_at=datetime.now(timezone.utc).isoformat(),
        default_branch=outcome.default_branch,
    )


def persist_outcome(outcome: RunOutcome, config: dict, store) -> None:
    """Write everything a successful run produced.

    Order matters: the page and build record go first and the state pointer
    last, so an interrupted write leaves the pointer where it was and the
    next run regenerates the same build.
    """
    docs_dir = config.get("docs_dir", "docs")

    if outcome.status == PROCESSED:
        snapshot = outcome.snapshot
        page_path = write_build_page(snapshot, docs_dir)
        write_release_artifacts(snapshot, config.get("out_dir", ".out"), page_file=page_path.as_posix())
        store.save_build(_snapshot_to_record(snapshot))
        console.print(f"[green]Wrote build page: {page_path.as_posix()}[/green]")
        console.print(f"PRs: {len(snapshot.changes)} | Compare: {snapshot.compare_url}")
        console.print(f"Release tag: {snapshot.tag}")
        if snapshot.was_truncated:
            console.print(
                f"[yellow]Warning: compare commit list appears truncated "
                f"({snapshot.listed_commits}/{snapshot.total_commits}).[/yellow]"
            )
        if snapshot.skipped_lookups:
            console.print(
                f"[yellow]Warning: {len(snapshot.skipped_lookups)} PR lookup(s) failed; "
                "the notes may be incomplete.[/yellow]"
            )

    if outcome.marker_to_persist is not None:
        store.save_state(_outcome_to_state(outcome))
        if outcome.status == BOOTSTRAP:
            console.print(f"[green]Saved baseline {outcome.marker_to_persist.short}.[/green]")

    rebuild_build_indexes(docs_dir)


@click.command("update")
@click.option(
    "--build-sha",
    default=None,
    help="Build to report on: a full commit SHA or unique prefix from the feed. Defaults to the newest build.",
)
@click.option(
    "--previous-sha",
    default=None,
    help="Build to diff against. Defaults to the build directly before --build-sha in the feed.",
)
@click.option("--force", is_flag=True, help="Regenerate even if this build (or a newer one) was already processed.")
@click.option(
    "--model",
    type=click.Choice(["openai", "anthropic"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option("--dry-run", is_flag=True, help="Print the generated notes without writing any files or state.")
@click.pass_context
def update_cmd(
    ctx,
    build_sha: str | None,
    previous_sha: str | None,
    force: bool,
    model: str | None,
    dry_run: bool,
):
    """Generate release notes for an upstream build.

    Reads the build feed, works out which pull requests landed since the
    previous build, asks the AI provider for release notes, and writes the
    build page, release artifacts and updated state.

    \b
    Environment variables:
      GITHUB_TOKEN         GitHub token (or use gh CLI)
      OPENAI_API_KEY       Required when using --model openai
      ANTHROPIC_API_KEY    Required when using --model anthropic
      TARGET_REPO          Upstream repository, overrides the config file
    """
    config = dict(ctx.obj["config"])
    if model:
        config["model"] = model

    if config["model"] not in _API_KEY_ENV:
        raise click.UsageError(f"Unknown model provider: {config['model']!r}. Choose 'openai' or 'anthropic'.")
    key_name, env_name = _API_KEY_ENV[config["model"]]
    if not config.get(key_name):
        raise click.UsageError(f"{env_name} environment variable is not set.")

    store = ctx.obj["store"]
    state = store.load_state(config["target_repo"])
    last_processed = (
        Marker(sha=state.last_processed_sha, version=state.last_processed_version) if state is not None else None
    )

    try:
        outcome = run_update(
            config,
            build_sha=build_sha,
            previous_sha=previous_sha,
            force=force,
            last_processed=last_processed,
        )
    except BuildNotesError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}")

    if dry_run:
        if outcome.snapshot is not None:
            console.print(Markdown(outcome.snapshot.notes))
        console.print(f"[bold]Dry run ({outcome.status}); nothing was written.[/bold]")
        return

    persist_outcome(outcome, config, store)
