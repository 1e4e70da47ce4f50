"""Interactive login and client construction.

Builds a :class:`JiftyRestApiClient` from a config file, reusing the stored
session when there is one and otherwise logging in, prompting for
credentials until the server accepts them.
"""

import getpass
import os
from collections.abc import Callable
from typing import TypeAlias

import httpx
import structlog

from . import config as config_module
from .jiftyapi import AuthenticationError, JiftyRestApiClient

logger = structlog.get_logger(__name__)

Prompt: TypeAlias = Callable[[], tuple[str, str]]


def prompt_credentials() -> tuple[str, str]:
    """Ask for an email address and password on the terminal."""
    email = input("email: ").strip()
    password = getpass.getpass("password: ")
    return email, password


def login_interactively(
    client: JiftyRestApiClient,
    prompt: Prompt = prompt_credentials,
    max_attempts: int | None = None,
) -> None:
    """Log in, prompting for credentials until the login succeeds.

    Credentials already set on the client are tried first. Each rejected
    attempt is logged and followed by a new prompt.

    Args:
        client: Client to log in.
        prompt: Returns an ``(email, password)`` pair.
        max_attempts: Give up after this many failed attempts. None retries
            until the login succeeds.

    Raises:
        AuthenticationError: The last failure, once max_attempts is reached.
        TransportError: If the server answers with an error status.
    """
    if client.sid:
        return

    attempts = 0
    while True:
        if not (client.email and client.password):
            client.email, client.password = prompt()

        try:
            client.login()
            return  # noqa: TRY300
        except AuthenticationError as exc:
            attempts += 1
            logger.warning("Login failed", attempt=attempts, error=str(exc))
            if max_attempts is not None and attempts >= max_attempts:
                raise
            client.email, client.password = prompt()


def create_client(
    config_path: str | os.PathLike | None = None,
    prompt: Prompt = prompt_credentials,
    transport: httpx.BaseTransport | None = None,
) -> JiftyRestApiClient:
    """Create a logged-in client from a config path or environment default.

    A new session ID, and the credentials that produced it, are written
    back to the config file.
    """
    path = config_module.resolve_config_path(config_path)
    settings = config_module.load_config(path)
    config_module.configure_logging(settings.log_level)

    client = JiftyRestApiClient(
        site=settings.site,
        cookie_name=settings.cookie_name,
        appname=settings.appname,
        email=settings.email,
        password=settings.password,
        sid=settings.sid,
        timeout=settings.timeout,
        transport=transport,
    )
    logger.info("Created REST client", site=settings.site, appname=settings.appname)

    if client.sid is None:
        login_interactively(client, prompt)
        updated = settings.model_copy(
            update={
                "email": client.email,
                "password": client.password,
                "sid": client.sid,
            },
        )
        config_module.save_config(updated, path)

    return client
