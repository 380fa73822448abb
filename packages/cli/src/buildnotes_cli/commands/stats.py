"""stats command — aggregate labels and authors across build history."""

from __future__ import annotations

from collections import Counter

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("stats")
@click.option("--repo", default=None, help="Upstream repository (owner/name). Defaults to target_repo from config.")
@click.option("--top", default=10, show_default=True, help="Number of top entries to show per category.")
@click.pass_context
def stats_cmd(ctx, repo: str | None, top: int):
    """Show aggregated statistics over every processed build.

    Reports how many pull requests each build carried, which GitHub labels
    show up most often and which authors landed the most changes.
    """
    config = ctx.obj["config"]
    store = ctx.obj["store"]
    repo = repo or config["target_repo"]

    records = store.list_builds(repo)
    if not records:
        console.print("[yellow]No builds recorded for this repository.[/yellow]")
        return

    total_builds = len(records)
    total_changes = sum(len(r.changes) for r in records)
    truncated = sum(1 for r in records if r.was_truncated)
    label_counter: Counter[str] = Counter()
    author_counter: Counter[str] = Counter()

    for record in records:
        for change in record.changes:
            label_counter.update(change.labels)
            if change.author:
                author_counter[change.author] += 1

    # --- Summary ---
    console.print(f"\n[bold]Build stats for [cyan]{repo}[/cyan][/bold]")
    console.print(f"  Builds:          {total_builds}")
    console.print(f"  Pull requests:   {total_changes}")
    console.print(f"  Avg per build:   {total_changes / total_builds:.1f}")
    if truncated:
        console.print(f"  [yellow]Truncated:       {truncated}[/yellow]")

    # --- Labels ---
    if label_counter:
        label_table = Table(title=f"Top {top} Labels", show_header=True)
        label_table.add_column("Label")
        label_table.add_column("PRs", justify="right")
        label_table.add_column("% of total", justify="right")
        for label, count in label_counter.most_common(top):
            label_table.add_row(label, str(count), f"{count / total_changes * 100:.1f}%")
        console.print(label_table)

    # --- Authors ---
    if author_counter:
        author_table = Table(title=f"Top {top} Authors", show_header=True)
        author_table.add_column("Author")
        author_table.add_column("PRs", justify="right")
        for author, count in author_counter.most_common(top):
            author_table.add_row(author, str(count))
        console.print(author_table)
