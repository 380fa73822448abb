"""Tests for the GitHub repository helpers."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from github import GithubException, UnknownObjectException

from buildnotes_core.errors import UpstreamUnavailableError
from buildnotes_core.gh.repository import (
    change_detail,
    changes_for_revision,
    compare,
    create_release,
    find_release,
    get_commit_date,
    get_repo,
    get_version,
    to_change_record,
)

SHA = "a" * 40
SHA2 = "b" * 40


def _label(name):
    label = MagicMock()
    label.name = name
    return label


def _pull(number=1, merged_at=datetime(2026, 1, 9, 12, 30, tzinfo=timezone.utc), body="Body", login="octocat"):
    pr = MagicMock()
    pr.number = number
    pr.title = f"PR {number}"
    pr.html_url = f"https://github.com/o/r/pull/{number}"
    pr.merged_at = merged_at
    pr.body = body
    pr.user = MagicMock(login=login) if login else None
    pr.labels = [_label("bug"), _label("editor")]
    return pr


class TestGetRepo:
    def test_wraps_github_errors(self, mocker):
        mocker.patch("buildnotes_core.gh.repository.Github").return_value.get_repo.side_effect = GithubException(
            404, {"message": "Not Found"}
        )
        with pytest.raises(UpstreamUnavailableError, match="owner/repo"):
            get_repo("owner/repo", token="tok")

    def test_passes_token(self, mocker):
        mock_github = mocker.patch("buildnotes_core.gh.repository.Github")
        get_repo("owner/repo", token="tok")
        mock_github.assert_called_once_with("tok")
        mock_github.return_value.get_repo.assert_called_once_with("owner/repo")


class TestToChangeRecord:
    def test_maps_fields(self):
        record = to_change_record(_pull())
        assert record.number == 1
        assert record.title == "PR 1"
        assert record.url == "https://github.com/o/r/pull/1"
        assert record.author == "octocat"
        assert record.merged_at == "2026-01-09T12:30:00Z"
        assert record.labels == ("bug", "editor")
        assert record.merged

    def test_unmerged(self):
        record = to_change_record(_pull(merged_at=None))
        assert record.merged_at is None
        assert not record.merged

    def test_naive_merge_time_treated_as_utc(self):
        assert to_change_record(_pull(merged_at=datetime(2026, 1, 9, 12, 30))).merged_at == "2026-01-09T12:30:00Z"

    def test_missing_user_and_body(self):
        record = to_change_record(_pull(body=None, login=None))
        assert record.author is None
        assert record.body == ""

    def test_body_truncated(self):
        assert to_change_record(_pull(body="x" * 50), max_body_chars=10).body == "x" * 10


class TestLookups:
    def test_changes_for_revision(self):
        repo = MagicMock()
        repo.get_commit.return_value.get_pulls.return_value = [_pull(1), _pull(2)]
        records = changes_for_revision(repo, SHA)
        repo.get_commit.assert_called_once_with(SHA)
        assert [r.number for r in records] == [1, 2]

    def test_change_detail(self):
        repo = MagicMock()
        repo.get_pull.return_value = _pull(7)
        assert change_detail(repo, 7).number == 7
        repo.get_pull.assert_called_once_with(7)


class TestCommitDate:
    def _repo(self, committer_date, author_date=None):
        repo = MagicMock()
        commit = repo.get_commit.return_value.commit
        commit.committer.date = committer_date
        commit.author.date = author_date
        return repo

    def test_committer_date(self):
        when = datetime(2026, 1, 9, 14, 5, tzinfo=timezone.utc)
        assert get_commit_date(self._repo(when), SHA) == when

    def test_falls_back_to_author_date(self):
        when = datetime(2026, 1, 9, 14, 5, tzinfo=timezone.utc)
        assert get_commit_date(self._repo(None, when), SHA) == when

    def test_missing_date_raises(self):
        with pytest.raises(UpstreamUnavailableError, match="commit date"):
            get_commit_date(self._repo(None, None), SHA)


class TestGetVersion:
    def test_reads_version_at_ref(self):
        repo = MagicMock()
        repo.get_contents.return_value.decoded_content = json.dumps({"version": "1.109.0"}).encode()
        assert get_version(repo, SHA) == "1.109.0"
        repo.get_contents.assert_called_once_with("package.json", ref=SHA)

    def test_missing_version_field(self):
        repo = MagicMock()
        repo.get_contents.return_value.decoded_content = b'{"name": "code-oss-dev"}'
        with pytest.raises(UpstreamUnavailableError, match="version"):
            get_version(repo, SHA)

    def test_invalid_json(self):
        repo = MagicMock()
        repo.get_contents.return_value.decoded_content = b"not json"
        with pytest.raises(UpstreamUnavailableError):
            get_version(repo, SHA)

    def test_github_error(self):
        repo = MagicMock()
        repo.get_contents.side_effect = GithubException(500, {"message": "boom"})
        with pytest.raises(UpstreamUnavailableError):
            get_version(repo, SHA)


class TestCompare:
    def test_returns_shas_and_counts(self):
        repo = MagicMock()
        comparison = repo.compare.return_value
        comparison.commits = [MagicMock(sha="c1"), MagicMock(sha="c2")]
        comparison.total_commits = 2
        comparison.html_url = "https://github.com/o/r/compare/x...y"

        result = compare(repo, SHA, SHA2)

        repo.compare.assert_called_once_with(SHA, SHA2)
        assert result.revision_ids == ("c1", "c2")
        assert result.total_count == 2
        assert not result.was_truncated

    def test_truncated_listing(self):
        repo = MagicMock()
        repo.compare.return_value.commits = [MagicMock(sha="c1")]
        repo.compare.return_value.total_commits = 400
        assert compare(repo, SHA, SHA2).was_truncated

    def test_fallback_url(self):
        repo = MagicMock()
        repo.full_name = "o/r"
        repo.compare.return_value.commits = []
        repo.compare.return_value.total_commits = 0
        repo.compare.return_value.html_url = None
        assert compare(repo, SHA, SHA2).html_url == f"https://github.com/o/r/compare/{SHA}...{SHA2}"

    def test_error_wrapped(self):
        repo = MagicMock()
        repo.compare.side_effect = GithubException(404, {"message": "No common ancestor"})
        with pytest.raises(UpstreamUnavailableError):
            compare(repo, SHA, SHA2)


class TestReleases:
    def test_find_release_missing(self):
        repo = MagicMock()
        repo.get_release.side_effect = UnknownObjectException(404, {"message": "Not Found"})
        assert find_release(repo, "insiders/x") is None

    def test_find_release_existing(self):
        repo = MagicMock()
        assert find_release(repo, "insiders/x") is repo.get_release.return_value

    def test_create_release_is_prerelease(self):
        repo = MagicMock()
        create_release(repo, "insiders/x", "Title", "Body")
        repo.create_git_release.assert_called_once_with(
            tag="insiders/x", name="Title", message="Body", prerelease=True
        )
