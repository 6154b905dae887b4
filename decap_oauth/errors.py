"""Exceptions raised by the OAuth proxy."""

from __future__ import annotations


class OAuthProxyError(Exception):
    """Base class for proxy errors."""


class ConfigurationError(OAuthProxyError):
    """GitHub client credentials are missing from the environment."""


class StateValidationError(OAuthProxyError):
    """The callback's ``state`` does not match the state cookie."""

    def __init__(self, message: str = "state_mismatch", requested_origin: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.requested_origin = requested_origin
