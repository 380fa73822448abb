"""CLI entry point for buildnotes.

Commands:
  update      — detect the build to report on and generate its release notes
  publish     — create the GitHub Release for the last generated build
  history     — list processed builds from the configured store
  stats       — aggregate labels and authors across build history
  init        — interactive setup wizard
  build-site  — assemble the static site into the dist directory
  preview     — serve the dist directory locally
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from buildnotes_cli.commands.history import history_cmd
from buildnotes_cli.commands.init import init_cmd
from buildnotes_cli.commands.publish import publish_cmd
from buildnotes_cli.commands.site import build_site_cmd, preview_cmd
from buildnotes_cli.commands.stats import stats_cmd
from buildnotes_cli.commands.update import update_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .buildnotes.yml settings.

    Store selection:
      store: sqlite → SQLiteStore (store_path or .buildnotes.db)
      (default)     → JsonFileStore (store_path or data_dir)

    This factory lives in cli.py so neither buildnotes_core nor
    buildnotes_store know about the CLI config format.
    """
    store_type = config.get("store", "json")

    if store_type == "sqlite":
        from buildnotes_store.sqlite import SQLiteStore

        return SQLiteStore(db_path=config.get("store_path") or ".buildnotes.db")

    if store_type != "json":
        console.print(f"[yellow]Unknown store {store_type!r}. Falling back to JSON files.[/yellow]")

    from buildnotes_store.json_file import JsonFileStore

    return JsonFileStore(data_dir=config.get("store_path") or config.get("data_dir", "data"))


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )
    for noisy in ("urllib3", "github", "httpx", "openai", "anthropic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("buildnotes"),
    prog_name="buildnotes",
)
@click.option(
    "--config",
    "config_path",
    default=".buildnotes.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="BUILDNOTES_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI-written release notes for every upstream build."""
    from buildnotes_cli.auth import resolve_github_token
    from buildnotes_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path
    ctx.call_on_close(store.close)


main.add_command(update_cmd)
main.add_command(publish_cmd)
main.add_command(history_cmd)
main.add_command(stats_cmd)
main.add_command(init_cmd)
main.add_command(build_site_cmd)
main.add_command(preview_cmd)
