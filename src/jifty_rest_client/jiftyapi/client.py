"""Jifty REST API client.

Provides an HTTP client for the ``/=/`` REST interface of a Jifty
application, with session-cookie authentication obtained through the
web-services ``Login`` action and YAML response decoding.
"""

import time
from collections.abc import Mapping, Sequence
from http.cookiejar import CookieJar
from typing import Any
from urllib.parse import urlsplit

import httpx
import pydantic
import structlog

from . import types
from .encoding import canonicalize_package, form_encode, join_url
from .yaml_loader import load_yaml

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 30.0

# Label used to namespace the single action of a web-services call.
DEFAULT_MONIKER = "fnord"

WEBSERVICES_PATH = "/__jifty/webservices/yaml"

FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}

QUERY_METHODS = frozenset({"GET", "HEAD"})


class JiftyError(Exception):
    """Base class for errors raised by the Jifty client."""


class TransportError(JiftyError):
    """Raised when the server answers with a non-success HTTP status."""

    def __init__(self, status_code: int, status_line: str):
        super().__init__(status_line)
        self.status_code = status_code
        self.status_line = status_line


class AuthenticationError(JiftyError):
    """Raised when logging in is impossible or rejected by the server."""


class JiftyRestApiClient:
    """HTTP client for a Jifty application's REST interface.

    Builds ``{site}/=/.../*.yml`` URLs, encodes arguments the way Jifty
    expects them, and decodes YAML responses into plain Python values.
    Model and action names are qualified with ``appname`` unless they
    already are.

    The session is carried by the ``cookie_name`` cookie. Pass ``sid`` to
    reuse an existing session, or call :meth:`login` with ``email`` and
    ``password`` set. Can be used as a context manager for automatic
    cleanup.
    """

    def __init__(
        self,
        site: str,
        cookie_name: str,
        appname: str,
        email: str | None = None,
        password: str | None = None,
        sid: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the REST API client.

        Args:
            site: URL of the application (e.g., "http://mushroom.mu").
            cookie_name: Name of the session cookie, found in the
                application's config under Framework/Web/SessionCookieName.
            appname: Name of the application as it is known to Jifty.
            email: Email address used to log in.
            password: Password used to log in.
            sid: Existing session ID. Bypasses login when set.
            timeout: Request timeout in seconds (default: 30.0).
            transport: Optional httpx transport, mainly for testing.

        Raises:
            ValueError: If site, cookie_name or appname is empty, or timeout
                is not positive.
        """
        if not site:
            msg = "site cannot be empty"
            raise ValueError(msg)
        if not cookie_name:
            msg = "cookie_name cannot be empty"
            raise ValueError(msg)
        if not appname:
            msg = "appname cannot be empty"
            raise ValueError(msg)
        if timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)

        self.site = site.rstrip("/")
        self.cookie_name = cookie_name
        self.appname = appname
        self.email = email
        self.password = password
        self._timeout = timeout
        self._transport = transport

        # Shared across client instances so the session survives close()
        self._cookie_jar = CookieJar()
        self._client: httpx.Client | None = None

        self._sid: str | None = None
        if sid:
            self.apply_session(sid)

    @property
    def client(self) -> httpx.Client:
        """Get or create the underlying httpx client.

        Returns:
            httpx.Client bound to this instance's cookie jar.
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Accept": "text/x-yaml, application/x-yaml"},
                cookies=self._cookie_jar,
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    @property
    def sid(self) -> str | None:
        """Current session ID, or None when not logged in."""
        return self._sid

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and cleanup resources."""
        self.close()

    def close(self):
        """Close the HTTP client if open."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()

    # ------------------------------------------------------------------
    # Session handling
    # ------------------------------------------------------------------

    def apply_session(self, sid: str) -> None:
        """Use ``sid`` as the session for all further requests.

        Stores the session cookie for the site's host in the cookie jar,
        replacing any previous one.

        Args:
            sid: Session ID issued by the application.
        """
        domain = self._cookie_domain()
        httpx.Cookies(self._cookie_jar).set(self.cookie_name, sid, domain=domain, path="/")
        self._sid = sid
        logger.debug("Session applied", cookie_name=self.cookie_name, domain=domain)

    def _cookie_domain(self) -> str:
        """Domain under which the cookie jar files cookies for the site.

        The jar matches dotless hosts such as ``localhost`` as
        ``localhost.local``, and stores server-set cookies there too.
        """
        host = urlsplit(self.site).hostname or ""
        if host and "." not in host:
            return f"{host}.local"
        return host

    def _session_from_cookies(self) -> str | None:
        for cookie in self._cookie_jar:
            if cookie.name == self.cookie_name and cookie.value:
                return cookie.value
        return None

    def login(self, email: str | None = None, password: str | None = None) -> None:
        """Log in with ``email`` and ``password``.

        Assumes the site uses Jifty's password authentication plugin,
        whose ``Login`` action takes ``address`` and ``password``. Does
        nothing when a session is already held.

        Args:
            email: Replaces the client's email address when given.
            password: Replaces the client's password when given.

        Raises:
            AuthenticationError: If credentials are missing, the email has
                no "@", or the server rejects the login.
            TransportError: If the web-services call fails.
        """
        if email is not None:
            self.email = email
        if password is not None:
            self.password = password

        if self._sid:
            return

        if not (self.email and self.password):
            msg = "Unable to log in without an email and password."
            raise AuthenticationError(msg)
        if "@" not in self.email:
            msg = 'Your email did not contain an "@" sign. Did you accidentally use double quotes?'
            raise AuthenticationError(msg)

        raw = self.call("Login", {"address": self.email, "password": self.password})
        if not isinstance(raw, Mapping):
            logger.warning("Login returned no result", email=self.email)
            msg = "Unable to log in: the server returned no result."
            raise AuthenticationError(msg)

        try:
            result = types.ActionResult.model_validate(raw)
        except pydantic.ValidationError as exc:
            logger.warning("Login returned an unreadable result", email=self.email)
            msg = f"Unable to log in: unexpected login result ({exc.error_count()} errors)"
            raise AuthenticationError(msg) from exc

        if result.failure:
            logger.warning("Login rejected", email=self.email, error=result.error)
            reason = result.error or result.message or "login failed"
            msg = f"Unable to log in: {reason}"
            raise AuthenticationError(msg)

        sid = self._session_from_cookies()
        if sid is None:
            msg = f"Unable to log in: no {self.cookie_name} cookie in the response."
            raise AuthenticationError(msg)

        self.apply_session(sid)
        logger.info("Logged in", email=self.email, site=self.site)

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    def build_url(self, segments: Sequence[Any] | str) -> str:
        """Build a REST URL from path segments.

        Args:
            segments: Path segments to escape and join, or a path string
                that is already escaped (e.g., "model/App.Model.Foo").

        Returns:
            Absolute URL of the form ``{site}/=/{path}.yml``.
        """
        path = segments if isinstance(segments, str) else join_url(segments)
        # remove trailing /
        path = path.rstrip("/")
        return f"{self.site}/=/{path}.yml"

    def _send(
        self,
        method: str,
        url: str,
        content: str | None = None,
    ) -> httpx.Response:
        """Send a request and log its duration.

        Raises:
            httpx.HTTPError: If the request cannot be completed.
        """
        start_time = time.time()
        try:
            logger.debug("Making API request", method=method, url=url)
            if content is None:
                response = self.client.request(method, url)
            else:
                response = self.client.request(
                    method,
                    url,
                    content=content.encode("utf-8"),
                    headers=FORM_HEADERS,
                )
            duration = time.time() - start_time
            logger.debug(
                "API request completed",
                status_code=response.status_code,
                duration_seconds=round(duration, 3),
            )
            return response  # noqa: TRY300
        except httpx.HTTPError:
            duration = time.time() - start_time
            logger.exception(
                "API request failed",
                method=method,
                url=url,
                duration_seconds=round(duration, 3),
            )
            raise

    def _refetch_if_suffix_dropped(self, response: httpx.Response) -> httpx.Response:
        """Re-request a redirect target that lost its ``.yml`` suffix.

        Jifty drops the format suffix when redirecting after a write, so
        the redirect lands on the HTML rendering of the resource.
        """
        if not response.history:
            return response
        target = str(response.url)
        base, sep, query = target.partition("?")
        if base.endswith(".yml"):
            return response
        logger.debug("Redirect dropped the format suffix", url=target)
        return self._send("GET", f"{base}.yml{sep}{query}")

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        """Decode a YAML response body.

        Raises:
            TransportError: If the response status is not a success.
        """
        if not response.is_success:
            status_line = f"{response.status_code} {response.reason_phrase}".strip()
            logger.error("API error response", status=status_line, url=str(response.url))
            raise TransportError(response.status_code, status_line)
        return load_yaml(response.content)

    def method(
        self,
        method: str,
        url: Sequence[Any] | str,
        args: Mapping[str, Any] | None = None,
    ) -> Any:
        """Perform a request against the REST interface.

        GET and HEAD send ``args`` in the query string; other methods send
        them as a form-encoded body.

        Args:
            method: HTTP method (case-insensitive).
            url: Path segments or an escaped path; see :meth:`build_url`.
            args: Optional arguments.

        Returns:
            The decoded YAML structure returned by the application.

        Raises:
            TransportError: If the application answers with an error status.
            httpx.HTTPError: If the HTTP request fails.
        """
        method = method.upper()
        full_url = self.build_url(url)
        encoded = form_encode(args)

        if method in QUERY_METHODS:
            if encoded:
                full_url = f"{full_url}?{encoded}"
            response = self._send(method, full_url)
        else:
            response = self._send(method, full_url, content=encoded)
            response = self._refetch_if_suffix_dropped(response)

        return self._decode(response)

    def get(self, url: Sequence[Any] | str, args: Mapping[str, Any] | None = None) -> Any:
        """GET the given URL. See :meth:`method`."""
        return self.method("GET", url, args)

    def post(self, url: Sequence[Any] | str, args: Mapping[str, Any] | None = None) -> Any:
        """POST the arguments to the given URL. See :meth:`method`."""
        return self.method("POST", url, args)

    def call(
        self,
        action: str,
        args: Mapping[str, Any] | None = None,
        moniker: str = DEFAULT_MONIKER,
    ) -> Any:
        """Run an action through the Jifty web-services API.

        This is not the REST interface, though it resembles it. Each
        argument is sent as ``J:A:F-{field}-{moniker}`` next to the action
        name in ``J:A-{moniker}``.

        Args:
            action: Action name (e.g., "Login").
            args: Action arguments.
            moniker: Label for this action invocation.

        Returns:
            The result recorded under ``moniker``, or None if absent.

        Raises:
            TransportError: If the server answers with an error status.
            httpx.HTTPError: If the HTTP request fails.
        """
        form: dict[str, Any] = {f"J:A-{moniker}": action}
        for field, value in (args or {}).items():
            form[f"J:A:F-{field}-{moniker}"] = value

        response = self._send("POST", self.site + WEBSERVICES_PATH, content=form_encode(form))
        data = self._decode(response)
        if not isinstance(data, Mapping):
            return None
        return data.get(moniker)

    # ------------------------------------------------------------------
    # Records and actions
    # ------------------------------------------------------------------

    def canonicalize_model(self, model: str) -> str:
        """Prepend ``{appname}.Model.`` unless it's there already."""
        return canonicalize_package(self.appname, "Model", model)

    def canonicalize_action(self, action: str) -> str:
        """Prepend ``{appname}.Action.`` unless it's there already."""
        return canonicalize_package(self.appname, "Action", action)

    def act(self, action: str, args: Mapping[str, Any] | None = None) -> Any:
        """Perform ``action`` with ``args``."""
        return self.post(["action", self.canonicalize_action(action)], args)

    def create(self, model: str, fields: Mapping[str, Any] | None = None) -> Any:
        """Create a new ``model`` record with ``fields`` set."""
        return self.post(["model", self.canonicalize_model(model)], fields)

    def read(self, model: str, key: str, value: Any) -> Any:
        """Return the ``model`` record where ``key`` is ``value``."""
        return self.get(["model", self.canonicalize_model(model), key, value])

    def update(
        self,
        model: str,
        key: str,
        value: Any,
        fields: Mapping[str, Any] | None = None,
    ) -> Any:
        """Find the ``model`` record where ``key`` is ``value`` and set ``fields``."""
        return self.method(
            "PUT",
            ["model", self.canonicalize_model(model), key, value],
            fields,
        )

    def delete(self, model: str, key: str, value: Any) -> Any:
        """Delete the ``model`` record where ``key`` is ``value``."""
        return self.method("DELETE", ["model", self.canonicalize_model(model), key, value])

    def search(
        self,
        model: str,
        fields: Mapping[str, Any] | None = None,
        output_column: str | None = None,
    ) -> Any:
        """Search ``model`` records matching every field/value pair.

        Args:
            model: Model name.
            fields: Field names mapped to the values to match, sent in
                the given order.
            output_column: If set, return only this column.

        Returns:
            The decoded list of matching records (or column values).
        """
        segments: list[Any] = ["search", self.canonicalize_model(model)]
        for key, value in (fields or {}).items():
            segments.extend((key, value))
        if output_column is not None:
            segments.append(output_column)
        return self.get(segments)
