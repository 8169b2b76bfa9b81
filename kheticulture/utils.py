"""Shared helpers: clock, identifiers, timestamps, data directory."""

import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid.uuid4())


def parse_datetime(s: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string into an aware datetime.

    Naive values are assumed to be UTC. Trailing ``Z`` is accepted since
    browser-written records use it.
    """
    if not s:
        return None
    if isinstance(s, datetime):
        dt = s
    else:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as ISO-8601, or None."""
    return dt.isoformat() if dt else None


def get_kheticulture_home() -> Path:
    """Get the data directory.

    ``KHETICULTURE_DATA_DIR`` overrides the default ``~/.kheticulture``.
    """
    env_dir = os.environ.get("KHETICULTURE_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".kheticulture"
