"""Base release-notes writer implementing the Template Method pattern.

All providers share the same algorithm:
    summarize() → _build_user_prompt()
                → _call_with_retry() → _call_api()   ← only this differs per provider
                → normalize_release_notes()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod

from buildnotes_core.errors import EmptyInputError, UpstreamUnavailableError
from buildnotes_core.models import BuildRange, ChangeRecord
from buildnotes_core.utils.markdown import normalize_release_notes

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_MAX_TOKENS = 4096
_MAX_BODY_CHARS = 4000


class BaseNotesWriter(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    MAX_BODY_CHARS: int = _MAX_BODY_CHARS

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def summarize(
        self,
        instructions: str,
        repo: str,
        default_branch: str,
        build_range: BuildRange,
        compare_url: str,
        changes: list[ChangeRecord],
    ) -> str:
        """Write Markdown release notes for the merged changes in a build range.

        Raises EmptyInputError for an empty change list: notes with nothing
        to describe would only be filler invented by the model.
        """
        if not changes:
            raise EmptyInputError("No PRs found for this build range; refusing to generate empty release notes.")

        user = self._build_user_prompt(repo, default_branch, build_range, compare_url, changes)
        raw = self._call_with_retry(instructions, user)
        text = normalize_release_notes((raw or "").strip())
        if not text:
            raise UpstreamUnavailableError(f"{self.__class__.__name__} returned empty release notes.")
        return text

    # ------------------------------------------------------------------ #
    # Abstract — implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        It should raise on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    raise UpstreamUnavailableError(
                        f"{self.__class__.__name__} API failed after {self.MAX_RETRIES} attempts: {e}"
                    ) from e
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        raise UpstreamUnavailableError(f"{self.__class__.__name__} is configured with no attempts.")

    def _build_user_prompt(
        self,
        repo: str,
        default_branch: str,
        build_range: BuildRange,
        compare_url: str,
        changes: list[ChangeRecord],
    ) -> str:
        """Serialize the range and its changes as the JSON input the instructions refer to."""
        payload = {
            "repo": repo,
            "defaultBranch": default_branch,
            "range": {
                "fromSha": build_range.previous.sha,
                "toSha": build_range.target.sha,
                "compareUrl": compare_url,
            },
            "pullRequests": [
                {
                    "number": c.number,
                    "title": c.title,
                    "url": c.url,
                    "author": c.author,
                    "merged_at": c.merged_at,
                    "labels": list(c.labels),
                    "body": (c.body or "")[: self.MAX_BODY_CHARS],
                }
                for c in changes
            ],
        }
        return json.dumps(payload)
