"""GitHub OAuth popup proxy for Decap CMS."""

from __future__ import annotations

__version__ = "0.1.0"
