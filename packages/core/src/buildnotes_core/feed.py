"""Upstream build feed.

The feed is a JSON array of commit SHAs, newest build first. Its order is the
only ordering the pipeline trusts; commit dates are fetched separately and
used for display.
"""

from __future__ import annotations

import logging

import requests

from buildnotes_core.errors import UpstreamUnavailableError
from buildnotes_core.models import Feed

logger = logging.getLogger(__name__)

USER_AGENT = "buildnotes"
_TIMEOUT_SECONDS = 30


def fetch_feed(url: str, session: requests.Session | None = None) -> Feed:
    """Download the build feed and return it as a Feed."""
    http = session or requests
    try:
        res = http.get(url, headers={"User-Agent": USER_AGENT}, timeout=_TIMEOUT_SECONDS)
        res.raise_for_status()
        payload = res.json()
    except requests.RequestException as e:
        raise UpstreamUnavailableError(f"Failed to fetch build feed {url}: {e}") from e
    except ValueError as e:
        raise UpstreamUnavailableError(f"Build feed {url} did not return JSON: {e}") from e

    if not isinstance(payload, list) or not payload:
        raise UpstreamUnavailableError("Build feed returned no commits.")

    shas = [s.strip() for s in payload if isinstance(s, str) and s.strip()]
    if len(shas) != len(payload):
        logger.warning("Ignored %d malformed entries in build feed.", len(payload) - len(shas))
    if not shas:
        raise UpstreamUnavailableError("Build feed returned no commits.")

    logger.debug("Build feed has %d entries; head is %s", len(shas), shas[0][:7])
    return Feed.from_shas(shas)
