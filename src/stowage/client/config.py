"""ClientConfig — connection settings for ``HttpTreeStore``."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

DEFAULT_TIMEOUT = 30.0

_LOCAL_HTTPS = re.compile(r"^https://localhost:")


def normalize_base_url(base_url: str) -> str:
    """Strip trailing slashes and downgrade ``https://localhost:`` to plain http.

    Local development servers rarely terminate TLS, and pointing the
    client at ``https://localhost:5000`` is a common slip.
    """
    base = base_url.strip().rstrip("/")
    return _LOCAL_HTTPS.sub("http://localhost:", base)


@dataclass
class ClientConfig:
    """Connection settings for the REST API."""

    base_url: str
    """API root, e.g. ``"https://drive.example.com/api"``."""

    token: str | None = None
    """Bearer credential issued by the auth service; sent on every request."""

    timeout: float = DEFAULT_TIMEOUT
    """Per-request timeout in seconds."""

    def __post_init__(self) -> None:
        self.base_url = normalize_base_url(self.base_url)
        if not self.base_url:
            raise ValueError("API base URL is not set")

    @property
    def headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    @classmethod
    def from_env(
        cls,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
    ) -> ClientConfig:
        """Build a config, falling back to ``STOWAGE_API_*`` environment variables."""
        resolved_timeout = timeout
        if resolved_timeout is None:
            raw = os.environ.get("STOWAGE_API_TIMEOUT")
            resolved_timeout = float(raw) if raw else DEFAULT_TIMEOUT
        return cls(
            base_url=base_url or os.environ.get("STOWAGE_API_BASE", ""),
            token=token or os.environ.get("STOWAGE_API_TOKEN") or None,
            timeout=resolved_timeout,
        )
