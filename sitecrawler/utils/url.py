"""
URL reference parsing and resolution helpers.
"""

import re
from typing import Tuple
from urllib.parse import SplitResult, urljoin, urlsplit


_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')
_INVALID_ESCAPE = re.compile(r'%(?![0-9A-Fa-f]{2})')


class InvalidURLError(ValueError):
    """Raised when a string cannot be parsed as a URL reference."""


def parse_reference(raw: str) -> SplitResult:
    """
    Parse a URL reference, absolute or relative.

    urlsplit accepts almost anything, so malformed percent escapes, control
    characters, bad ports, bad IPv6 literals and relative paths whose first
    segment holds a colon are rejected here explicitly.

    Args:
        raw: The reference as found in a page or given by the user

    Returns:
        The split reference

    Raises:
        InvalidURLError: If the reference is malformed
    """
    if _CONTROL_CHARS.search(raw):
        raise InvalidURLError(f"invalid control character in URL: {raw!r}")
    try:
        parts = urlsplit(raw)
        parts.port  # raises ValueError on a non-numeric or out of range port
    except ValueError as e:
        raise InvalidURLError(f"invalid URL {raw!r}: {e}") from e

    # a colon before the first slash of a relative path would read as a scheme
    if not parts.scheme and not parts.netloc and ':' in parts.path.split('/', 1)[0]:
        raise InvalidURLError(f"first path segment in URL cannot contain colon: {raw!r}")

    for component in (parts.netloc, parts.path, parts.fragment):
        if _INVALID_ESCAPE.search(component):
            raise InvalidURLError(f"invalid URL escape in {raw!r}")

    return parts


def host_of(parts: SplitResult) -> str:
    """Return the host[:port] of a split URL, without any userinfo."""
    return parts.netloc.rpartition('@')[2]


def resolve_reference(base: str, raw: str) -> str:
    """
    Resolve a reference against the URL of the page that contained it.

    Raises:
        InvalidURLError: If the reference is malformed
    """
    parse_reference(raw)
    try:
        return urljoin(base, raw)
    except ValueError as e:
        raise InvalidURLError(f"cannot resolve {raw!r} against {base!r}: {e}") from e


def validate_seed_url(raw: str) -> Tuple[SplitResult, str]:
    """
    Validate a seed URL and return its split form and host.

    A seed must carry both a scheme and a host.

    Raises:
        InvalidURLError: If the seed is empty, malformed, or not absolute
    """
    if not raw:
        raise InvalidURLError("empty start url")
    parts = parse_reference(raw)
    host = host_of(parts)
    if not parts.scheme or not host:
        raise InvalidURLError(f"start url must have a scheme and a host: {raw!r}")
    return parts, host
