"""Identifiers, single-use secrets and expiry helpers shared by the services."""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

TOKEN_BYTES = 24


def generate_id(prefix: Optional[str] = None) -> str:
    base = str(uuid.uuid4())
    return f"{prefix}_{base}" if prefix else base


def generate_token() -> str:
    """Unguessable hex token for invitation and intake links."""
    return secrets.token_hex(TOKEN_BYTES)


def utcnow() -> datetime:
    # Naive UTC, matching the DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def expiry_after(days: int, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(days=days)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if expires_at is None:
        return True
    if expires_at.tzinfo is not None:
        expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
    return expires_at < (now or utcnow())
