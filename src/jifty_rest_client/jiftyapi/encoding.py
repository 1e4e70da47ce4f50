"""URL and form encoding for the Jifty REST interface.

Jifty decodes path segments and form fields with a narrower unreserved set
than RFC 3986: only ``A-Za-z0-9_.!~*'()-`` pass through, everything else is
percent-encoded from its UTF-8 bytes with uppercase hex digits.
"""

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

# Letters, digits and "_.-~" are always safe for quote().
UNRESERVED_EXTRA = "!*'()"


def escape(value: Any) -> str:
    """Percent-encode a single value.

    Args:
        value: Value to encode. Non-string values are converted with ``str()``.

    Returns:
        The encoded string.
    """
    return quote(str(value), safe=UNRESERVED_EXTRA, encoding="utf-8")


def join_url(segments: Iterable[Any]) -> str:
    """Encode each path segment and join them with ``/``."""
    return "/".join(escape(segment) for segment in segments)


def form_encode(args: Mapping[str, Any] | None) -> str:
    """Encode arguments as ``key=value`` pairs joined with ``&``.

    Pairs are emitted in key order so the output is deterministic.

    Args:
        args: Field names mapped to values.

    Returns:
        The encoded string, empty when there are no arguments.
    """
    if not args:
        return ""
    return "&".join(
        f"{escape(key)}={escape(value)}" for key, value in sorted(args.items())
    )


def canonicalize_package(appname: str, kind: str, name: str) -> str:
    """Qualify a model or action name with the application namespace.

    Args:
        appname: Application name as Jifty knows it (e.g. "MushroomKingdom").
        kind: Package kind, "Model" or "Action".
        name: Bare ("Hero") or qualified ("MushroomKingdom.Model.Hero") name.

    Returns:
        The qualified name. Already-qualified names are returned unchanged.
    """
    prefix = f"{appname}.{kind}."
    if name.startswith(prefix):
        return name
    return prefix + name
