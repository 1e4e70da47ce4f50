"""Tests for date argument canonicalization."""

import httpx
import pytest

import jifty_rest_client
from jifty_rest_client import dates
from jifty_rest_client.jiftyapi import JiftyRestApiClient


def test_plain_date_is_returned_unchanged():
    """A bare YYYY-MM-DD date passes through."""
    assert dates.canonicalize_date("2007-11-20") == "2007-11-20"


def test_midnight_time_is_stripped():
    """A trailing midnight time component is removed."""
    assert dates.canonicalize_date("2007-11-20 00:00:00") == "2007-11-20"


@pytest.mark.parametrize(
    "value",
    [
        "20 Nov 2007",
        "2007-11-20 12:30:00",
        "07-11-20",
        "2007/11/20",
        "",
    ],
)
def test_malformed_dates_are_rejected(value):
    """Anything but YYYY-MM-DD (plus midnight) raises MalformedInputError."""
    with pytest.raises(dates.MalformedInputError):
        dates.canonicalize_date(value)


def test_malformed_input_error_is_value_error():
    """Callers catching ValueError also catch malformed dates."""
    assert issubclass(dates.MalformedInputError, ValueError)


# ---------------------------------------------------------------------------
# Use on request arguments
# ---------------------------------------------------------------------------


def _client(requests: list) -> JiftyRestApiClient:
    def respond(request: httpx.Request) -> httpx.Response:
        request.read()
        requests.append(request)
        return httpx.Response(200, content=b"id: 1\n")

    return JiftyRestApiClient(
        site="http://jifty.example.com",
        cookie_name="JIFTY_SID_APP",
        appname="App",
        transport=httpx.MockTransport(respond),
    )


def test_package_exports_date_helpers():
    """The date helpers are available from the top-level package."""
    assert jifty_rest_client.canonicalize_date is dates.canonicalize_date
    assert jifty_rest_client.MalformedInputError is dates.MalformedInputError


def test_malformed_date_argument_never_reaches_the_server():
    """A bad date fails while the arguments are built, before any request."""
    requests: list[httpx.Request] = []
    api_client = _client(requests)

    with pytest.raises(jifty_rest_client.MalformedInputError):
        api_client.create("Task", {"due": jifty_rest_client.canonicalize_date("next week")})

    assert requests == []


def test_canonical_date_argument_is_sent():
    """A midnight timestamp is sent as a bare date."""
    requests: list[httpx.Request] = []
    api_client = _client(requests)

    api_client.create("Task", {"due": jifty_rest_client.canonicalize_date("2007-11-20 00:00:00")})

    assert requests[-1].content == b"due=2007-11-20"
