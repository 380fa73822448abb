"""build-site and preview commands — assemble and serve the static site."""

from __future__ import annotations

import logging
import shutil
from functools import partial
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import unquote

import click
from rich.console import Console

console = Console()
logger = logging.getLogger(__name__)


def build_site(site_dir: Path, data_dir: Path, dist_dir: Path) -> Path:
    """Copy the site sources into a fresh ``dist_dir`` and the data under ``dist_dir/data``.

    A missing data directory is fine: a fresh repository still gets a site.
    """
    if not site_dir.is_dir():
        raise click.ClickException(f"Site directory {site_dir} not found.")

    shutil.rmtree(dist_dir, ignore_errors=True)
    shutil.copytree(site_dir, dist_dir)
    if data_dir.is_dir():
        shutil.copytree(data_dir, dist_dir / "data", dirs_exist_ok=True)
    else:
        logger.debug("No data directory at %s; building without data.", data_dir)
    return dist_dir


def resolve_preview_path(root: Path, url_path: str) -> Path | None:
    """Map a request path to the file the preview server should send.

    Directories resolve to their index.html. Unknown paths without a file
    extension fall back to the root index.html so client-side routes work,
    except under data/ where a missing file is a real 404. Returns None for
    a 404 and raises ValueError for paths containing "..".
    """
    rel = unquote(url_path.split("?", 1)[0].split("#", 1)[0]).lstrip("/")
    if ".." in rel:
        raise ValueError(f"Refusing path outside the site root: {url_path!r}")

    requested = rel or "index.html"
    candidate = root / requested
    if candidate.is_dir():
        candidate = candidate / "index.html"
    if candidate.is_file():
        return candidate

    if "." not in requested and not requested.startswith("data/"):
        fallback = root / "index.html"
        return fallback if fallback.is_file() else None
    return None


class PreviewHandler(SimpleHTTPRequestHandler):
    """Static file handler with the single-page-app fallback of resolve_preview_path()."""

    def _resolve(self) -> Path | None:
        try:
            path = resolve_preview_path(Path(self.directory), self.path)
        except ValueError:
            self.send_error(400, "Bad request")
            return None
        if path is None:
            self.send_error(404, "Not found")
        return path

    def _send(self, head_only: bool) -> None:
        path = self._resolve()
        if path is None:
            return
        body = path.read_bytes()
        self.send_response(200)
        self.send_header("Content-Type", self.guess_type(str(path)))
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if not head_only:
            self.wfile.write(body)

    def do_GET(self):
        self._send(head_only=False)

    def do_HEAD(self):
        self._send(head_only=True)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


@click.command("build-site")
@click.pass_context
def build_site_cmd(ctx):
    """Assemble the static site into the dist directory."""
    config = ctx.obj["config"]
    dist = build_site(
        Path(config.get("site_dir", "site")),
        Path(config.get("data_dir", "data")),
        Path(config.get("dist_dir", "dist")),
    )
    console.print(f"[green]Built {dist.as_posix()}/[/green]")


@click.command("preview")
@click.option("--port", default=4173, show_default=True, envvar="PORT", help="Port to listen on.")
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.pass_context
def preview_cmd(ctx, port: int, host: str):
    """Serve the built site locally. Run `buildnotes build-site` first."""
    dist = Path(ctx.obj["config"].get("dist_dir", "dist"))
    if not (dist / "index.html").is_file():
        raise click.ClickException(f"{dist}/index.html not found. Run `buildnotes build-site` first.")

    handler = partial(PreviewHandler, directory=str(dist))
    with ThreadingHTTPServer((host, port), handler) as server:
        console.print(f"Preview server running on [bold]http://{host}:{port}[/bold]")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            console.print("\n[dim]Stopped.[/dim]")
