"""Date argument handling.

Jifty date fields take ``YYYY-MM-DD``. Dates read back from the
application may carry a midnight time component, which is stripped.
"""

import re

DATE_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})(?: 00:00:00)?$")


class MalformedInputError(ValueError):
    """Raised when an argument is not in the format Jifty expects."""


def canonicalize_date(value: str) -> str:
    """Normalize a date string to ``YYYY-MM-DD``.

    Args:
        value: Date as ``YYYY-MM-DD``, optionally followed by " 00:00:00".

    Returns:
        The date part.

    Raises:
        MalformedInputError: If the value has any other shape.
    """
    match = DATE_PATTERN.match(value.strip())
    if match is None:
        msg = f"Invalid date {value!r}, expected YYYY-MM-DD"
        raise MalformedInputError(msg)
    return match.group(1)
