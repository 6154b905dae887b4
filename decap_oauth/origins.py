"""Resolution of the origins the popup may post its result to."""

from __future__ import annotations

import httpx


def _origin_of(url: httpx.URL) -> str:
    # netloc is lowercased and IDNA encoded, with default ports dropped
    return f"{url.scheme}://{url.netloc.decode('ascii')}"


def normalize_origin(value: str, base: str) -> str:
    """Reduce ``value`` to ``scheme://host[:port]``, resolving it against ``base`` if relative."""
    base_url = httpx.URL(base)
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL:
        return _origin_of(base_url)

    if not url.is_absolute_url:
        url = base_url.join(url)
    if not url.host:
        return _origin_of(base_url)
    return _origin_of(url)


def derive_request_origin(origin_header: str | None, referer_header: str | None, fallback: str) -> str:
    """Work out which page opened the popup: ``Origin``, then ``Referer``, then ``fallback``."""
    if origin_header:
        return origin_header

    if referer_header:
        try:
            referer = httpx.URL(referer_header)
        except httpx.InvalidURL:
            referer = None
        if referer is not None and referer.is_absolute_url:
            return _origin_of(referer)

    return fallback


def resolve_allowed_origins(
    requested_origin: str | None,
    request_url: str,
    configured: str | None = None,
) -> list[str]:
    """Ordered, distinct postMessage targets; never empty.

    The origin recorded in the state comes first, then each entry of the
    comma-separated ``configured`` allow-list, then the handler's own origin.
    """
    ordered: list[str] = []

    def append(value: str | None) -> None:
        if not value:
            return
        origin = normalize_origin(value, request_url)
        if origin not in ordered:
            ordered.append(origin)

    append(requested_origin)

    for entry in (configured or "").split(","):
        append(entry.strip())

    append(request_url)

    return ordered or [normalize_origin(request_url, request_url)]
