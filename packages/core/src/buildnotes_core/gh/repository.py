from __future__ import annotations

import json
from datetime import datetime, timezone

from github import Github, GithubException, UnknownObjectException

from buildnotes_core.errors import UpstreamUnavailableError
from buildnotes_core.models import ChangeRecord, RangeComparison


def get_repo(repo_name: str, token: str | None):
    try:
        return Github(token).get_repo(repo_name)
    except GithubException as e:
        raise UpstreamUnavailableError(f"Could not load repository {repo_name}: {e}") from e


def get_default_branch(repo) -> str:
    return repo.default_branch or "main"


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def get_commit_date(repo, sha: str) -> datetime:
    """Return the committer date of ``sha`` (author date as a fallback), in UTC."""
    try:
        commit = repo.get_commit(sha).commit
    except GithubException as e:
        raise UpstreamUnavailableError(f"Could not fetch commit {sha[:7]}: {e}") from e
    when = (commit.committer and commit.committer.date) or (commit.author and commit.author.date)
    if when is None:
        raise UpstreamUnavailableError(f"Unable to resolve commit date for build SHA {sha}.")
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


def get_version(repo, sha: str, path: str = "package.json") -> str:
    """Read the ``version`` field of a JSON manifest pinned to ``sha``."""
    try:
        raw = repo.get_contents(path, ref=sha).decoded_content
        version = json.loads(raw).get("version")
    except GithubException as e:
        raise UpstreamUnavailableError(f"Could not fetch {path} at {sha[:7]}: {e}") from e
    except (ValueError, AttributeError) as e:
        raise UpstreamUnavailableError(f"{path} at {sha[:7]} is not a JSON object: {e}") from e
    if not version:
        raise UpstreamUnavailableError(f"Unable to resolve version from {path} at build SHA {sha[:7]}.")
    return str(version)


def compare(repo, base_sha: str, head_sha: str) -> RangeComparison:
    """Return the commits between two builds using GitHub's compare API."""
    try:
        comparison = repo.compare(base_sha, head_sha)
        shas = tuple(c.sha for c in comparison.commits)
        total = comparison.total_commits
        url = comparison.html_url
    except GithubException as e:
        raise UpstreamUnavailableError(f"Could not compare {base_sha[:7]}...{head_sha[:7]}: {e}") from e
    return RangeComparison(
        revision_ids=shas,
        total_count=total if isinstance(total, int) else len(shas),
        html_url=url or f"https://github.com/{repo.full_name}/compare/{base_sha}...{head_sha}",
    )


def to_change_record(pr, max_body_chars: int | None = None) -> ChangeRecord:
    body = pr.body or ""
    if max_body_chars is not None:
        body = body[:max_body_chars]
    return ChangeRecord(
        number=pr.number,
        title=pr.title or "",
        url=pr.html_url or "",
        author=pr.user.login if pr.user else None,
        merged_at=_iso(pr.merged_at),
        labels=tuple(label.name for label in (pr.labels or []) if label.name),
        body=body,
    )


def changes_for_revision(repo, sha: str, max_body_chars: int | None = None) -> list[ChangeRecord]:
    """Return the pull requests GitHub associates with a commit."""
    return [to_change_record(pr, max_body_chars) for pr in repo.get_commit(sha).get_pulls()]


def change_detail(repo, number: int, max_body_chars: int | None = None) -> ChangeRecord:
    return to_change_record(repo.get_pull(number), max_body_chars)


def find_release(repo, tag: str):
    """Return the release for ``tag`` or None when it does not exist."""
    try:
        return repo.get_release(tag)
    except UnknownObjectException:
        return None


def create_release(repo, tag: str, title: str, body: str, prerelease: bool = True):
    try:
        return repo.create_git_release(tag=tag, name=title, message=body, prerelease=prerelease)
    except GithubException as e:
        raise UpstreamUnavailableError(f"Could not create release {tag}: {e}") from e
