"""Tests for fetching the upstream build feed."""

from unittest.mock import MagicMock

import pytest
import requests

from buildnotes_core.errors import UpstreamUnavailableError
from buildnotes_core.feed import USER_AGENT, fetch_feed

URL = "https://example.test/api/commits/insider"


def _session(payload=None, exc=None, json_exc=None):
    session = MagicMock()
    if exc is not None:
        session.get.side_effect = exc
        return session
    response = MagicMock()
    if json_exc is not None:
        response.json.side_effect = json_exc
    else:
        response.json.return_value = payload
    session.get.return_value = response
    return session


def test_returns_feed_in_upstream_order():
    feed = fetch_feed(URL, session=_session(["c3", "c2", "c1"]))
    assert feed.shas == ["c3", "c2", "c1"]
    assert feed.head.sha == "c3"


def test_sends_user_agent_and_timeout():
    session = _session(["c1"])
    fetch_feed(URL, session=session)
    kwargs = session.get.call_args.kwargs
    assert kwargs["headers"]["User-Agent"] == USER_AGENT
    assert kwargs["timeout"] > 0


def test_uses_requests_module_by_default(mocker):
    mock_get = mocker.patch("buildnotes_core.feed.requests.get")
    mock_get.return_value.json.return_value = ["c1"]
    assert fetch_feed(URL).shas == ["c1"]
    mock_get.assert_called_once()


def test_http_error_wrapped():
    session = _session(["c1"])
    session.get.return_value.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
    with pytest.raises(UpstreamUnavailableError, match="503"):
        fetch_feed(URL, session=session)


def test_connection_error_wrapped():
    with pytest.raises(UpstreamUnavailableError):
        fetch_feed(URL, session=_session(exc=requests.ConnectionError("refused")))


def test_non_json_body_wrapped():
    with pytest.raises(UpstreamUnavailableError, match="JSON"):
        fetch_feed(URL, session=_session(json_exc=ValueError("Expecting value")))


@pytest.mark.parametrize("payload", [[], {}, {"commits": ["c1"]}, None])
def test_empty_or_non_list_payload(payload):
    with pytest.raises(UpstreamUnavailableError, match="no commits"):
        fetch_feed(URL, session=_session(payload))


def test_malformed_entries_dropped():
    feed = fetch_feed(URL, session=_session(["c2", None, 7, "  ", " c1 "]))
    assert feed.shas == ["c2", "c1"]


def test_only_malformed_entries():
    with pytest.raises(UpstreamUnavailableError):
        fetch_feed(URL, session=_session([None, ""]))


def test_repeated_sha_keeps_newest_position():
    feed = fetch_feed(URL, session=_session(["c3", "c2", "c3", "c1"]))
    assert feed.position("c3") == 0
    assert feed.successor("c3").sha == "c2"
