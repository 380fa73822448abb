"""init command — interactive setup wizard for a new notes site.

Writes .buildnotes.yml and, optionally, a scheduled GitHub Actions workflow
that runs `buildnotes update`, commits the generated pages and data back to
the repository and publishes a release for every new build.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import click
import yaml
from rich.console import Console

from buildnotes_core.config import DEFAULT_CONFIG

console = Console()

_WORKFLOW_PATH = Path(".github/workflows/buildnotes.yml")

_WORKFLOW_TEMPLATE = """\
name: Build Notes

on:
  schedule:
    - cron: "{cron}"
  workflow_dispatch:
    inputs:
      build_sha:
        description: "Build SHA to generate notes for (defaults to the newest build)"
        required: false
      force:
        description: "Regenerate even if already processed"
        type: boolean
        default: false

concurrency:
  group: buildnotes
  cancel-in-progress: false

jobs:
  update:
    runs-on: ubuntu-latest
    permissions:
      contents: write

    steps:
      - uses: actions/checkout@v4

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install buildnotes
        run: pip install "{requirement}"

      - name: Generate notes
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
          {api_key_env}: ${{{{ secrets.{api_key_env} }}}}
        run: |
          buildnotes update \\
            ${{{{ inputs.build_sha && format('--build-sha {{0}}', inputs.build_sha) || '' }}}} \\
            ${{{{ inputs.force && '--force' || '' }}}}

      - name: Commit generated files
        run: |
          git config user.name "github-actions[bot]"
          git config user.email "github-actions[bot]@users.noreply.github.com"
          git add {data_dir} {docs_dir}
          git diff --cached --quiet || git commit -m "Update build notes"
          git push

      - name: Publish release
        if: hashFiles('{out_dir}/build.json') != ''
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
        run: buildnotes publish --repo ${{{{ github.repository }}}}
"""


@click.command("init")
@click.option("--repo", default=None, help="Repository hosting the notes site (owner/name). Auto-detected from git remote.")
def init_cmd(repo: str | None):
    """Set up buildnotes for a notes site repository.

    Creates .buildnotes.yml and optionally generates a GitHub Actions
    workflow that checks for new builds on a schedule.
    """
    console.print("\n[bold cyan]buildnotes init[/bold cyan] — setup wizard\n")

    # --- Detect the site repo from git remote ---
    if repo is None:
        repo = _detect_repo_from_git()
        if repo:
            console.print(f"[dim]Detected repository: {repo}[/dim]")
        else:
            repo = click.prompt("Repository hosting the notes site (owner/name)")

    target_repo = click.prompt("Upstream repository to follow", default=DEFAULT_CONFIG["target_repo"])

    # --- Choose provider ---
    provider = click.prompt(
        "AI provider",
        type=click.Choice(["openai", "anthropic"]),
        default="openai",
    )
    api_key_env = "ANTHROPIC_API_KEY" if provider == "anthropic" else "OPENAI_API_KEY"

    # --- Choose store backend ---
    console.print("\nBuild history store:")
    console.print("  [bold]json[/bold]    — JSON files under data/, committed with the site (default)")
    console.print("  [bold]sqlite[/bold]  — local SQLite file (good for experiments)")
    store_type = click.prompt(
        "Store backend",
        type=click.Choice(["json", "sqlite"]),
        default="json",
    )

    config: dict = {"target_repo": target_repo, "model": provider, "store": store_type, "release_repo": repo}
    if store_type == "sqlite":
        db_path = click.prompt("SQLite database path", default=".buildnotes.db")
        if db_path != ".buildnotes.db":
            config["store_path"] = db_path
        console.print(f"[green]SQLite store configured at {db_path}[/green]")

    # --- Write .buildnotes.yml ---
    _write_config(config)
    console.print("[green]Created .buildnotes.yml[/green]")

    # --- GitHub Actions workflow ---
    setup_ci = click.confirm(f"\nGenerate {_WORKFLOW_PATH} for GitHub Actions?", default=True)
    if setup_ci:
        cron = click.prompt("Schedule (cron, UTC)", default="*/30 * * * *")
        _write_workflow(provider, api_key_env, cron)
        console.print(f"[green]Created {_WORKFLOW_PATH}[/green]")
        console.print(
            f"\n[yellow]Remember to add [bold]{api_key_env}[/bold] to your "
            "GitHub repository secrets (Settings → Secrets → Actions).[/yellow]"
        )

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Record a baseline with: [bold]buildnotes update[/bold]")


def _detect_repo_from_git() -> str | None:
    """Try to detect the GitHub repo slug from the git remote URL."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    url = result.stdout.strip()
    # https://github.com/owner/repo.git  →  owner/repo
    # git@github.com:owner/repo.git      →  owner/repo
    if "github.com" not in url:
        return None
    slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git")
    return slug if "/" in slug else None


def _write_config(config: dict, path: Path = Path(".buildnotes.yml")) -> None:
    """Write or update .buildnotes.yml, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("buildnotes")
    except PackageNotFoundError:
        return "0.1.0"


def _requirement(provider: str) -> str:
    extra = "[anthropic]" if provider == "anthropic" else ""
    return f"buildnotes{extra}=={_get_version()}"


def _write_workflow(provider: str, api_key_env: str, cron: str, path: Path = _WORKFLOW_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        _WORKFLOW_TEMPLATE.format(
            cron=cron,
            requirement=_requirement(provider),
            api_key_env=api_key_env,
            data_dir=DEFAULT_CONFIG["data_dir"],
            docs_dir=DEFAULT_CONFIG["docs_dir"],
            out_dir=DEFAULT_CONFIG["out_dir"],
        )
    )
