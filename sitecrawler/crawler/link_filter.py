"""
Scope filter deciding which discovered links stay on the seed host.
"""

from typing import Optional, Tuple

from ..utils.url import InvalidURLError, host_of, parse_reference, validate_seed_url


class LinkFilter:
    """
    Accepts hrefs that are relative or point at the seed host.

    Accepted hrefs are returned unchanged; resolving them against the page
    they were found on is left to the caller.
    """

    def __init__(self, seed_host: str):
        self.seed_host = seed_host

    @classmethod
    def for_seed(cls, seed_url: str) -> 'LinkFilter':
        """Build a filter bound to the host of a seed URL."""
        _, host = validate_seed_url(seed_url)
        return cls(host)

    def accept(self, raw_href: str, seed_host: Optional[str] = None) -> Tuple[bool, str]:
        """
        Decide whether an href is in scope.

        Args:
            raw_href: The href attribute value
            seed_host: Host to compare against, defaults to the bound seed host

        Returns:
            (True, raw_href) if in scope, (False, "") otherwise
        """
        if seed_host is None:
            seed_host = self.seed_host

        try:
            parts = parse_reference(raw_href)
        except InvalidURLError:
            return False, ""

        host = host_of(parts)
        if host:
            if host == seed_host:
                return True, raw_href
            return False, ""

        # mailto:, javascript: and friends carry a scheme but no host
        if not parts.scheme:
            return True, raw_href
        return False, ""
