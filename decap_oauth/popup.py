"""HTML document rendered into the OAuth popup at the end of the callback."""

from __future__ import annotations

import json
from typing import Any

from decap_oauth.messenger import (
    HANDSHAKE_RETRY_MS,
    SAFETY_TIMEOUT_MS,
    authorization_message,
    handshake_message,
)

POPUP_HTML = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>OAuth Complete</title>
  </head>
  <body>
    <script>
      (function() {
        const candidateOrigins = %(candidates)s;
        const handshakeMessage = %(handshake)s;
        const authorizationMessage = %(message)s;

        function hasOpener() {
          return typeof window !== 'undefined' && !!window.opener;
        }

        function start() {
          if (!hasOpener()) {
            return;
          }

          const reachableOrigins = [];
          let resolvedOrigin = null;
          let state = 'awaiting_handshake';

          const finalize = (origin) => {
            if (state === 'finalized') {
              return;
            }
            state = 'finalized';
            const triedTargets = new Set();
            const tryPost = (target) => {
              if (!target || triedTargets.has(target)) {
                return false;
              }
              triedTargets.add(target);
              try {
                window.opener.postMessage(authorizationMessage, target);
                return true;
              } catch (error) {
                console.warn('Failed to post OAuth message to opener:', target, error);
                return false;
              }
            };

            const preferredTargets = [origin, resolvedOrigin, ...reachableOrigins, ...candidateOrigins];
            let delivered = preferredTargets.some((target) => tryPost(target));
            if (!delivered) {
              delivered = tryPost('*');
            }
            if (!delivered) {
              console.warn('OAuth popup could not deliver authorization message to opener.');
            }

            setTimeout(() => {
              try {
                window.close();
              } catch (error) {
                console.warn('Unable to close OAuth popup:', error);
              }
            }, 0);
          };

          const onMessage = (event) => {
            if (!candidateOrigins.includes(event.origin) || event.data !== handshakeMessage) {
              return;
            }
            resolvedOrigin = event.origin;
            window.removeEventListener('message', onMessage);
            finalize(event.origin);
          };

          window.addEventListener('message', onMessage);

          const sendHandshakes = () => {
            if (!hasOpener() || state === 'finalized') {
              return;
            }
            for (const origin of candidateOrigins) {
              try {
                window.opener.postMessage(handshakeMessage, origin);
                if (!reachableOrigins.includes(origin)) {
                  reachableOrigins.push(origin);
                }
              } catch (error) {
                console.warn('OAuth handshake not allowed for origin:', origin, error);
              }
            }
            try {
              window.opener.postMessage(handshakeMessage, '*');
            } catch (error) {
              console.warn('Wildcard OAuth handshake failed:', error);
            }
          };

          sendHandshakes();
          setTimeout(sendHandshakes, %(retry_ms)d);

          setTimeout(() => {
            window.removeEventListener('message', onMessage);
            finalize(resolvedOrigin);
          }, %(timeout_ms)d);
        }

        if (document.readyState === 'complete') {
          start();
        } else {
          window.addEventListener('load', start);
        }
      })();
    </script>
    <p>Authentication %(outcome)s. You can close this window.</p>
  </body>
</html>
"""


def script_json(value: Any) -> str:
    """JSON that is safe to inline in a ``<script>`` element."""
    return (
        json.dumps(value)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


def render_popup_page(
    origins: list[str],
    provider: str,
    payload: dict[str, Any],
    error: str | None = None,
) -> str:
    status = "error" if error else "success"
    return POPUP_HTML % {
        "candidates": script_json(origins),
        "handshake": script_json(handshake_message(provider)),
        "message": script_json(authorization_message(provider, status, payload)),
        "retry_ms": HANDSHAKE_RETRY_MS,
        "timeout_ms": SAFETY_TIMEOUT_MS,
        "outcome": "failed" if error else "succeeded",
    }
