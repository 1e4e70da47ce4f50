"""Jifty REST API client package.

Provides an HTTP client for the REST interface of Jifty applications that
returns the decoded YAML responses with minimal processing.

Exports:
    JiftyRestApiClient: HTTP client with session handling and error checking.
    JiftyError: Base class for client errors.
    TransportError: Raised for non-success HTTP responses.
    AuthenticationError: Raised when logging in fails.
    types: Module containing Pydantic models for web-services results.
    DEFAULT_TIMEOUT: Default HTTP request timeout.
"""

from . import types
from .client import (
    DEFAULT_TIMEOUT,
    AuthenticationError,
    JiftyError,
    JiftyRestApiClient,
    TransportError,
)
from .encoding import canonicalize_package, escape, form_encode, join_url

__all__ = [
    "DEFAULT_TIMEOUT",
    "AuthenticationError",
    "JiftyError",
    "JiftyRestApiClient",
    "TransportError",
    "canonicalize_package",
    "escape",
    "form_encode",
    "join_url",
    "types",
]
