from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def utcnow_iso() -> str:
    """Current UTC time as the ISO text stored in timestamp columns."""

    return utcnow().strftime("%Y-%m-%dT%H:%M:%SZ")
