"""publish command — turn the last generated build into a GitHub Release."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console

from buildnotes_core.errors import BuildNotesError
from buildnotes_core.gh.repository import create_release, find_release, get_repo

console = Console()

_META_FILENAME = "build.json"
_REQUIRED_META_KEYS = ("tag", "title", "notesFile")


def _load_artifacts(out_dir: Path) -> tuple[dict, str]:
    meta_path = out_dir / _META_FILENAME
    if not meta_path.exists():
        raise click.ClickException(f"{meta_path} not found. Run `buildnotes update` first.")
    try:
        meta = json.loads(meta_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{meta_path} is not valid JSON: {e}")

    missing = [k for k in _REQUIRED_META_KEYS if not meta.get(k)]
    if missing:
        raise click.ClickException(f"{meta_path} is missing: {', '.join(missing)}")

    notes_path = Path(meta["notesFile"])
    if not notes_path.is_absolute() and not notes_path.exists():
        notes_path = out_dir / notes_path.name
    if not notes_path.exists():
        raise click.ClickException(f"Release notes file {notes_path} not found.")
    return meta, notes_path.read_text(encoding="utf-8")


@click.command("publish")
@click.option(
    "--repo",
    default=None,
    help="Repository that receives the release (owner/name). Defaults to release_repo from config.",
)
@click.pass_context
def publish_cmd(ctx, repo: str | None):
    """Create a prerelease for the most recently generated build.

    Reads build.json and release-notes.md from the output directory written
    by `buildnotes update`. A release whose tag already exists is left alone.
    """
    config = ctx.obj["config"]
    repo = repo or config.get("release_repo")
    if not repo:
        raise click.UsageError("No release repository. Pass --repo or set release_repo in .buildnotes.yml.")

    token = config.get("github_token")
    if not token:
        raise click.UsageError("Publishing needs a GitHub token. Set GITHUB_TOKEN or log in with `gh auth login`.")

    meta, notes = _load_artifacts(Path(config.get("out_dir", ".out")))

    try:
        release_repo = get_repo(repo, token)
        existing = find_release(release_repo, meta["tag"])
        if existing is not None:
            console.print(f"[yellow]Release {meta['tag']} already exists: {existing.html_url}[/yellow]")
            return
        release = create_release(release_repo, meta["tag"], meta["title"], notes)
    except BuildNotesError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}")

    console.print(f"[green]Published {meta['title']}[/green]")
    console.print(f"[dim]{release.html_url}[/dim]")
