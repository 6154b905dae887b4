"""The postMessage protocol spoken between the OAuth popup and the CMS window.

Decap CMS listens on the opener for ``authorizing:<provider>`` and answers
with the same string, which tells the popup which origin it is really on.
The popup then posts ``authorization:<provider>:<status>:<json>`` there.

The browser side of this lives in the script rendered by
:mod:`decap_oauth.popup`. :class:`PopupSession` is the same state machine
written in Python, so the ordering and once-only rules can be tested.
"""

from __future__ import annotations

import enum
import json
import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any

logger = logging.getLogger(__name__)

WILDCARD = "*"

HANDSHAKE_RETRY_MS = 150
SAFETY_TIMEOUT_MS = 600

PostMessage = Callable[[str, str], None]


def handshake_message(provider: str) -> str:
    return f"authorizing:{provider}"


def authorization_message(provider: str, status: str, payload: dict[str, Any]) -> str:
    return f"authorization:{provider}:{status}:{json.dumps(payload, separators=(',', ':'))}"


def delivery_targets(
    origin: str | None,
    resolved: str | None,
    reachable: Iterable[str],
    candidates: Iterable[str],
) -> list[str]:
    """Preference order for the final message, without the wildcard fallback."""
    targets: list[str] = []
    for target in (origin, resolved, *reachable, *candidates):
        if target and target not in targets:
            targets.append(target)
    return targets


class SessionState(enum.Enum):
    AWAITING_HANDSHAKE = "awaiting_handshake"
    FINALIZED = "finalized"


class PopupSession:
    """One popup's handshake-then-deliver exchange with its opener.

    ``post_message(message, target_origin)`` raises when the browser refuses
    the target, the way ``window.opener.postMessage`` throws on an origin
    mismatch. Finalization happens once, whichever of the handshake reply or
    the safety timeout gets there first.
    """

    def __init__(
        self,
        post_message: PostMessage,
        candidates: list[str],
        provider: str,
        status: str,
        payload: dict[str, Any],
        close: Callable[[], None] | None = None,
    ) -> None:
        self.post_message = post_message
        self.candidates = list(candidates)
        self.handshake = handshake_message(provider)
        self.message = authorization_message(provider, status, payload)
        self.close = close
        self.state = SessionState.AWAITING_HANDSHAKE
        self.reachable: list[str] = []
        self.resolved: str | None = None
        self.delivered_to: str | None = None
        self._lock = threading.Lock()

    @property
    def finalized(self) -> bool:
        return self.state is SessionState.FINALIZED

    def send_handshakes(self) -> None:
        if self.finalized:
            return
        for origin in self.candidates:
            try:
                self.post_message(self.handshake, origin)
            except Exception as exc:
                logger.warning("Handshake not allowed for origin %s: %s", origin, exc)
                continue
            if origin not in self.reachable:
                self.reachable.append(origin)
        try:
            self.post_message(self.handshake, WILDCARD)
        except Exception as exc:
            logger.warning("Wildcard handshake failed: %s", exc)

    def receive(self, origin: str, data: Any) -> bool:
        """Handle an inbound message; returns True if it was the handshake reply."""
        if self.finalized or origin not in self.candidates or data != self.handshake:
            return False
        self.resolved = origin
        self.finalize(origin)
        return True

    def on_timeout(self) -> None:
        self.finalize(self.resolved)

    def finalize(self, origin: str | None = None) -> str | None:
        """Deliver the result; returns the target it went to, or None."""
        with self._lock:
            if self.state is SessionState.FINALIZED:
                return self.delivered_to
            self.state = SessionState.FINALIZED

        targets = delivery_targets(origin, self.resolved, self.reachable, self.candidates)
        for target in (*targets, WILDCARD):
            try:
                self.post_message(self.message, target)
            except Exception as exc:
                logger.warning("Failed to post OAuth message to %s: %s", target, exc)
                continue
            self.delivered_to = target
            break
        else:
            logger.warning("OAuth popup could not deliver authorization message to opener.")

        if self.close is not None:
            try:
                self.close()
            except Exception as exc:
                logger.warning("Unable to close OAuth popup: %s", exc)
        return self.delivered_to
