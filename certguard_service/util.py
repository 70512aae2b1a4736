"""
Utility functions for the CertGuard service.
"""

from datetime import datetime, timezone


def utc_rfc3339(dt: datetime) -> str:
    """Format a datetime as an RFC3339 UTC string."""
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def mask_sensitive(value: str, visible_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only the last N characters.
    Useful for logging.
    """
    if len(value) <= visible_chars:
        return '*' * len(value)
    return '*' * (len(value) - visible_chars) + value[-visible_chars:]
