"""Jifty REST Client.

Client for the REST interface of Jifty web applications: creates, reads,
updates, deletes and searches records, runs actions, and manages the
session cookie obtained through the web-services login action.

Date arguments should go through :func:`canonicalize_date` before being
passed to a request, so malformed dates fail without touching the network.
"""

from .dates import MalformedInputError, canonicalize_date

__version__ = "0.1.0"

__all__ = [
    "MalformedInputError",
    "canonicalize_date",
]
