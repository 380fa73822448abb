"""Range resolution and state advancement.

The procedure is:
    resolve_target()  → which build are we reporting on?
    should_skip()     → has it (or a newer build) already been processed?
    compute_range()   → which build does the report start after?
    collect_changes() → which merged pull requests are in that range?
    next_persisted_marker() → where does the saved pointer move to?

Nothing here performs I/O on its own. Feed order is authoritative; a smaller
position means a newer build.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable

from buildnotes_core.errors import (
    AmbiguousMarkerError,
    InvalidRangeError,
    MarkerNotFoundError,
    NoPreviousMarkerError,
    TooManyChangesError,
)
from buildnotes_core.models import (
    BuildRange,
    ChangeCollection,
    ChangeRecord,
    Feed,
    Marker,
    SkippedLookup,
    short_sha,
)

logger = logging.getLogger(__name__)

# Ranges with more merged PRs than this produce a page too long to be useful
# and a prompt too large to summarise well; such builds are handled by hand.
MAX_CHANGES = 100

_AMBIGUOUS_SAMPLE = 8


def resolve_target(feed: Feed, identifier: str | None, label: str = "Build SHA") -> Marker:
    """Resolve a full SHA or unique SHA prefix to a marker in the feed."""
    value = (identifier or "").strip()
    if not value:
        raise MarkerNotFoundError(f"Missing {label}.")

    exact = feed.get(value)
    if exact is not None:
        return exact

    matches = [m for m in feed if m.sha.startswith(value)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = ", ".join(m.short for m in matches[:_AMBIGUOUS_SAMPLE])
        more = ", ..." if len(matches) > _AMBIGUOUS_SAMPLE else ""
        raise AmbiguousMarkerError(
            f"{label} '{value}' is ambiguous ({len(matches)} matches in the build feed). "
            f"Please provide a longer prefix. Matches include: {sample}{more}",
            matches=[m.sha for m in matches],
        )

    raise MarkerNotFoundError(
        f"{label} '{value}' was not found in the build feed. Make sure it is a commit SHA listed by the feed."
    )


def compute_range(
    feed: Feed,
    previous_marker: Marker | None,
    target: Marker,
    previous_override: str | None = None,
) -> BuildRange | None:
    """Return the range to report on, or None when this run is a bootstrap.

    With no previously processed marker there is nothing to diff against;
    reporting "everything since the beginning of the feed" would be useless,
    so the caller records ``target`` as the baseline instead.
    """
    if previous_marker is None:
        return None

    if previous_override:
        previous = resolve_target(feed, previous_override, label="Previous SHA")
        target_pos = feed.position(target.sha)
        if target_pos is not None and feed.position(previous.sha) <= target_pos:
            raise InvalidRangeError(
                f"Previous SHA {previous.short} must be older than Build SHA {target.short} in the build feed."
            )
    else:
        previous = feed.successor(target.sha)
        if previous is None:
            raise NoPreviousMarkerError(
                f"No previous build SHA available for {target.short} (it is the oldest build in the feed). "
                "Pass --previous-sha to choose one."
            )

    return BuildRange(previous=previous, target=target)


def _is_at_or_after(feed: Feed, persisted: Marker | None, target: Marker) -> bool:
    """True when ``persisted`` is the same build as ``target`` or a newer one."""
    if persisted is None:
        return False
    persisted_pos = feed.position(persisted.sha)
    target_pos = feed.position(target.sha)
    if persisted_pos is None or target_pos is None:
        return False
    return persisted_pos <= target_pos


def should_skip(persisted: Marker | None, feed: Feed, target: Marker, force: bool = False) -> bool:
    """Return True when ``target`` was already processed or superseded."""
    if force:
        return False
    return _is_at_or_after(feed, persisted, target)


def next_persisted_marker(persisted: Marker | None, feed: Feed, target: Marker, force: bool = False) -> Marker:
    """Choose the marker to save after ``target`` was processed successfully.

    A forced re-run of an older build keeps the newer saved marker so the
    pointer never moves backward.
    """
    if _is_at_or_after(feed, persisted, target):
        if persisted.sha != target.sha:
            logger.info(
                "Keeping saved marker %s; %s is older%s.",
                persisted.short,
                target.short,
                " (forced re-run)" if force else "",
            )
        return persisted
    return target


def _fan_out(func: Callable, keys: list, max_workers: int):
    """Call ``func`` for every key, yielding ``(key, result, error)`` in key order."""
    def _safe(key):
        try:
            return key, func(key), None
        except Exception as e:  # noqa: BLE001
            return key, None, e

    if max_workers <= 1 or len(keys) <= 1:
        yield from (_safe(k) for k in keys)
        return
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        yield from pool.map(_safe, keys)


def collect_changes(
    revision_ids: Iterable[str],
    changes_for_revision: Callable[[str], Iterable[ChangeRecord]],
    change_detail: Callable[[int], ChangeRecord] | None = None,
    max_changes: int = MAX_CHANGES,
    max_workers: int = 1,
) -> ChangeCollection:
    """Find the merged pull requests behind a list of commits.

    One PR usually spans several commits, so results are keyed by PR number.
    A failed lookup is logged and recorded in ``skipped``; the rest of the
    range is still reported.
    """
    shas = [s for s in revision_ids if s]
    by_number: dict[int, ChangeRecord] = {}
    skipped: list[SkippedLookup] = []

    for sha, changes, err in _fan_out(lambda s: list(changes_for_revision(s)), shas, max_workers):
        if err is not None:
            logger.warning("Failed to resolve PRs for commit %s: %s", short_sha(sha), err)
            skipped.append(SkippedLookup(key=sha, reason=str(err)))
            continue
        for change in changes:
            # A commit can reference open or closed-unmerged PRs too; only
            # merged ones describe what shipped in the build.
            if change.merged:
                by_number.setdefault(change.number, change)

    if change_detail is not None:
        detailed: dict[int, ChangeRecord] = {}
        for number, change, err in _fan_out(change_detail, sorted(by_number), max_workers):
            if err is not None:
                logger.warning("Failed to fetch PR #%d: %s", number, err)
                skipped.append(SkippedLookup(key=f"#{number}", reason=str(err)))
                continue
            detailed[number] = change
        by_number = detailed

    merged = [c for c in by_number.values() if c.merged]
    if len(merged) > max_changes:
        raise TooManyChangesError(
            f"Too many PRs for this build ({len(merged)}, limit {max_changes}). Refusing to generate; handle manually.",
            count=len(merged),
        )

    merged.sort(key=lambda c: (c.merged_at or "", c.number), reverse=True)
    return ChangeCollection(changes=merged, skipped=skipped)
