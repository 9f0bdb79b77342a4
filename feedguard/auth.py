# feedguard/auth.py
"""Shared authentication dependencies."""

import secrets

from fastapi import Header, HTTPException

from feedguard.config import get_settings


def require_shared_secret(
    x_proxy_secret: str | None = Header(default=None, alias="X-Proxy-Secret"),
) -> None:
    """Validate the proxy shared secret. Skipped when SHARED_SECRET is not set."""
    expected = get_settings().SHARED_SECRET

    if not expected:
        return

    if not x_proxy_secret or not secrets.compare_digest(
        x_proxy_secret.encode("utf-8"), expected.encode("utf-8")
    ):
        raise HTTPException(status_code=401, detail="unauthorized")
