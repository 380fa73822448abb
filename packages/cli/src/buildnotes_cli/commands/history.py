"""history command — list processed builds from the store."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("history")
@click.option("--repo", default=None, help="Upstream repository (owner/name). Defaults to target_repo from config.")
@click.option("--limit", default=20, show_default=True, help="Maximum number of builds to show.")
@click.pass_context
def history_cmd(ctx, repo: str | None, limit: int):
    """Show processed builds for a repository, newest first."""
    config = ctx.obj["config"]
    store = ctx.obj["store"]
    repo = repo or config["target_repo"]

    records = store.list_builds(repo)
    if not records:
        console.print("[yellow]No builds recorded yet.[/yellow]")
        return

    records = list(reversed(records))[:limit]

    table = Table(title=f"Build History — {repo}", show_header=True, header_style="bold cyan")
    table.add_column("Build", style="bold", no_wrap=True)
    table.add_column("Version", no_wrap=True)
    table.add_column("SHA")
    table.add_column("Previous")
    table.add_column("PRs", justify="right")
    table.add_column("Commits", justify="right")

    for r in records:
        commits = str(r.total_commits)
        if r.was_truncated:
            commits = f"[yellow]{r.listed_commits}/{r.total_commits}[/yellow]"
        table.add_row(
            r.title,
            r.version,
            r.build_sha[:7],
            r.previous_sha[:7],
            str(len(r.changes)),
            commits,
        )

    console.print(table)
