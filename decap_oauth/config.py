"""Environment-driven configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from decap_oauth.errors import ConfigurationError

PACKAGE_DIR = Path(__file__).parent


def load_env_file(*candidates: Path) -> Path | None:
    """Load the first existing ``.env`` file into ``os.environ`` without overriding.

    Defaults to ``decap_oauth/.env``, then the repository root ``.env``.
    """
    if not candidates:
        candidates = (PACKAGE_DIR / ".env", PACKAGE_DIR.parent / ".env")

    for env_file in candidates:
        if not env_file.is_file():
            continue
        for line in env_file.read_text().splitlines():
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                os.environ.setdefault(key.strip(), value.strip())
        return env_file
    return None


@dataclass(frozen=True)
class Settings:
    client_id: str
    client_secret: str
    allowed_return_origins: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        environ = os.environ if environ is None else environ
        client_id = environ.get("GITHUB_CLIENT_ID", "").strip()
        client_secret = environ.get("GITHUB_CLIENT_SECRET", "").strip()
        if not client_id or not client_secret:
            raise ConfigurationError("GitHub OAuth is not configured.")
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            allowed_return_origins=environ.get("CMS_ALLOWED_RETURN_ORIGINS") or None,
        )


def log_level(environ: Mapping[str, str] | None = None) -> str:
    environ = os.environ if environ is None else environ
    return environ.get("LOG_LEVEL", "INFO").upper()
