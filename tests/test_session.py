"""Tests for interactive login and client construction from config."""

from unittest.mock import MagicMock
from urllib.parse import parse_qs

import httpx
import pytest
import yaml

from jifty_rest_client import config, session
from jifty_rest_client.jiftyapi import AuthenticationError, JiftyRestApiClient

SITE = "http://jifty.example.com"
COOKIE_NAME = "JIFTY_SID_APP"
GOOD_PASSWORD = "secret"


class LoginServer:
    """Transport handler accepting GOOD_PASSWORD for any address."""

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if request.url.path != "/__jifty/webservices/yaml":
            return httpx.Response(200, content=b"ok: 1\n")
        fields = parse_qs(request.content.decode("utf-8"))
        if fields.get("J:A:F-password-fnord") == [GOOD_PASSWORD]:
            body = {"fnord": {"success": 1, "failure": 0}}
            headers = {"Set-Cookie": f"{COOKIE_NAME}=abc123; Path=/"}
        else:
            body = {"fnord": {"success": 0, "failure": 1, "error": "Bad password"}}
            headers = {}
        return httpx.Response(200, content=yaml.safe_dump(body).encode(), headers=headers)

    @property
    def login_attempts(self) -> int:
        return sum(1 for r in self.requests if r.url.path == "/__jifty/webservices/yaml")


@pytest.fixture
def server() -> LoginServer:
    return LoginServer()


def make_client(server: LoginServer, **kwargs) -> JiftyRestApiClient:
    return JiftyRestApiClient(
        site=SITE,
        cookie_name=COOKIE_NAME,
        appname="App",
        transport=httpx.MockTransport(server),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# login_interactively
# ---------------------------------------------------------------------------


def test_stored_credentials_are_tried_before_prompting(server: LoginServer):
    """Valid stored credentials log in without prompting."""
    prompt = MagicMock()
    api_client = make_client(server, email="me@example.com", password=GOOD_PASSWORD)

    session.login_interactively(api_client, prompt)

    prompt.assert_not_called()
    assert api_client.sid == "abc123"


def test_prompts_when_credentials_missing(server: LoginServer):
    """A client without credentials prompts for them."""
    prompt = MagicMock(return_value=("me@example.com", GOOD_PASSWORD))
    api_client = make_client(server)

    session.login_interactively(api_client, prompt)

    prompt.assert_called_once()
    assert api_client.email == "me@example.com"
    assert api_client.sid == "abc123"


def test_retries_until_login_succeeds(server: LoginServer):
    """Rejected credentials lead to a new prompt until one works."""
    prompt = MagicMock(
        side_effect=[
            ("me@example.com", "wrong"),
            ("not-an-email", GOOD_PASSWORD),
            ("me@example.com", GOOD_PASSWORD),
        ],
    )
    api_client = make_client(server)

    session.login_interactively(api_client, prompt)

    assert prompt.call_count == 3
    # The email without "@" is refused locally
    assert server.login_attempts == 2
    assert api_client.sid == "abc123"


def test_gives_up_after_max_attempts(server: LoginServer):
    """The last AuthenticationError is raised once max_attempts is reached."""
    prompt = MagicMock(return_value=("me@example.com", "wrong"))
    api_client = make_client(server)

    with pytest.raises(AuthenticationError, match="Bad password"):
        session.login_interactively(api_client, prompt, max_attempts=2)

    assert server.login_attempts == 2
    assert api_client.sid is None


def test_existing_session_skips_login(server: LoginServer):
    """A client holding a session is left alone."""
    prompt = MagicMock()
    api_client = make_client(server, sid="existing")

    session.login_interactively(api_client, prompt)

    prompt.assert_not_called()
    assert server.requests == []


# ---------------------------------------------------------------------------
# create_client
# ---------------------------------------------------------------------------


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "client.yml"
    path.write_text(
        yaml.safe_dump(
            {
                "site": SITE,
                "cookie_name": COOKIE_NAME,
                "appname": "App",
                "log_level": "WARNING",
            },
        ),
    )
    return path


def test_create_client_logs_in_and_saves_session(server: LoginServer, config_path):
    """A new session and the accepted credentials are written back."""
    prompt = MagicMock(return_value=("me@example.com", GOOD_PASSWORD))

    api_client = session.create_client(config_path, prompt=prompt, transport=httpx.MockTransport(server))

    assert api_client.sid == "abc123"
    saved = config.load_config(config_path)
    assert saved.sid == "abc123"
    assert saved.email == "me@example.com"
    assert saved.password == GOOD_PASSWORD


def test_create_client_reuses_stored_session(server: LoginServer, config_path):
    """A stored session is applied without logging in."""
    data = yaml.safe_load(config_path.read_text())
    config_path.write_text(yaml.safe_dump({**data, "sid": "stored"}))
    prompt = MagicMock()

    api_client = session.create_client(config_path, prompt=prompt, transport=httpx.MockTransport(server))
    api_client.read("Foo", "id", 1)

    prompt.assert_not_called()
    assert server.login_attempts == 0
    assert server.requests[-1].headers["Cookie"] == f"{COOKIE_NAME}=stored"
