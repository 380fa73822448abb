"""Exception types raised by the build-notes pipeline.

Every failure a run can end with derives from BuildNotesError so the CLI can
report it with a single except clause and a non-zero exit status.
"""

from __future__ import annotations


class BuildNotesError(Exception):
    """Base class for all pipeline failures."""


class MarkerNotFoundError(BuildNotesError):
    """The requested build identifier is not present in the feed."""


class AmbiguousMarkerError(BuildNotesError):
    """A SHA prefix matched more than one build in the feed."""

    def __init__(self, message: str, matches: list[str]):
        super().__init__(message)
        self.matches = matches


class NoPreviousMarkerError(BuildNotesError):
    """The target is the oldest build in the feed and no previous SHA was given."""


class InvalidRangeError(BuildNotesError):
    """The previous build is not strictly older than the target build."""


class TooManyChangesError(BuildNotesError):
    """The range holds more merged changes than a single page should cover."""

    def __init__(self, message: str, count: int):
        super().__init__(message)
        self.count = count


class UpstreamUnavailableError(BuildNotesError):
    """A call to GitHub, the feed, or the LLM provider failed and cannot be skipped."""


class EmptyInputError(BuildNotesError):
    """Release notes were requested for a range with no merged changes."""
