"""Anti-CSRF state carried through the GitHub redirect and the state cookie.

The state is not signed: it only has to prove that the callback belongs to the
browser that started the flow, which the HttpOnly cookie already guarantees.
"""

from __future__ import annotations

import base64
import json
import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class OAuthState:
    nonce: str
    origin: str | None = None


def new_state(origin: str | None) -> OAuthState:
    """Mint a state with a fresh random nonce."""
    return OAuthState(nonce=str(uuid.uuid4()), origin=origin)


def encode_state(state: OAuthState) -> str:
    raw = json.dumps({"nonce": state.nonce, "origin": state.origin}, separators=(",", ":"))
    encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
    return encoded.replace("+", "-").replace("/", "_").rstrip("=")


def decode_state(token: str | None) -> OAuthState | None:
    """Decode a state token, returning ``None`` for anything malformed."""
    if not token:
        return None

    data = token.replace("-", "+").replace("_", "/")
    data += "=" * (-len(data) % 4)

    try:
        parsed = json.loads(base64.b64decode(data, validate=True).decode("utf-8"))
    except (ValueError, RecursionError):
        # binascii.Error, UnicodeDecodeError and JSONDecodeError are all ValueErrors;
        # deeply nested JSON exhausts the recursion limit instead
        return None

    if not isinstance(parsed, dict) or not isinstance(parsed.get("nonce"), str):
        return None

    origin = parsed.get("origin")
    return OAuthState(nonce=parsed["nonce"], origin=origin if isinstance(origin, str) else None)
