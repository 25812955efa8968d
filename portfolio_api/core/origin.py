"""Origin allow-list checks.

Browsers send ``Origin`` on cross-origin POSTs; some privacy settings strip it
and leave only ``Referer``. Both are compared by exact ``scheme://host[:port]``
string against the configured allow-list. There is no wildcard matching.
"""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urlsplit


def parse_origins(origins_string: str | None) -> tuple[str, ...]:
    """Parse a comma-separated allow-list, preserving order.

    Examples:
        >>> parse_origins("https://a.example, https://b.example ")
        ('https://a.example', 'https://b.example')
        >>> parse_origins(None)
        ()
    """
    if not origins_string:
        return ()
    seen: dict[str, None] = {}
    for origin in origins_string.split(","):
        origin = origin.strip().rstrip("/")
        if origin:
            seen.setdefault(origin, None)
    return tuple(seen)


def origin_from_referer(referer: str) -> str | None:
    """Return the ``scheme://netloc`` part of a Referer URL, or None if unparsable."""
    try:
        parts = urlsplit(referer)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


class OriginGuard:
    """Decide whether a request comes from an allowed site."""

    def __init__(self, allowed_origins: Iterable[str]) -> None:
        self.allowed_origins = tuple(allowed_origins)

    def is_origin_listed(self, origin: str | None) -> bool:
        return bool(origin) and origin in self.allowed_origins

    def rejection_reason(
        self,
        request_origin: str | None,
        request_referer: str | None,
        is_development_mode: bool,
    ) -> str | None:
        """Check the request's declared origin against the allow-list.

        Args:
            request_origin: Value of the Origin header, if any.
            request_referer: Value of the Referer header, if any.
            is_development_mode: When True every request is allowed.

        Returns:
            None if the request may proceed, otherwise a short reason code
            (``origin_not_listed``, ``referer_not_listed`` or
            ``no_origin_or_referer``).
        """

        if is_development_mode:
            return None

        if request_origin:
            return None if self.is_origin_listed(request_origin) else "origin_not_listed"

        if request_referer:
            referer_origin = origin_from_referer(request_referer)
            if referer_origin is not None and self.is_origin_listed(referer_origin):
                return None
            return "referer_not_listed"

        return "no_origin_or_referer"

    def is_allowed(
        self,
        request_origin: str | None,
        request_referer: str | None,
        is_development_mode: bool,
    ) -> bool:
        return self.rejection_reason(request_origin, request_referer, is_development_mode) is None
