"""Set-Cookie building and Cookie header parsing for the state cookie."""

from __future__ import annotations

from urllib.parse import quote, unquote

COOKIE_NAME = "gh_oauth_state"
COOKIE_MAX_AGE_SECONDS = 10 * 60

EPOCH_EXPIRES = "Thu, 01 Jan 1970 00:00:00 GMT"

# Same unescaped set as JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


def build_set_cookie(name: str, value: str, path: str, max_age: int) -> str:
    """Build a ``Set-Cookie`` value; ``max_age <= 0`` expires the cookie immediately."""
    attributes = [
        f"{name}={quote(value, safe=_URI_COMPONENT_SAFE)}",
        f"Path={path or '/'}",
        "HttpOnly",
        "Secure",
        "SameSite=Lax",
    ]
    if max_age > 0:
        attributes.append(f"Max-Age={max_age}")
    else:
        attributes.append("Max-Age=0")
        attributes.append(f"Expires={EPOCH_EXPIRES}")
    return "; ".join(attributes)


def parse_cookie_header(header: str | None) -> dict[str, str]:
    cookies: dict[str, str] = {}
    if not header:
        return cookies

    for part in header.split(";"):
        name, _, value = part.strip().partition("=")
        if not name:
            continue
        cookies[name] = unquote(value)
    return cookies
