"""Small helpers shared across fieldmark modules."""

from __future__ import annotations

from datetime import datetime, timezone

BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string with a ``Z`` suffix."""

    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> datetime:
    """Parse an ISO-8601 timestamp, returning ``datetime.min`` (UTC) when it cannot be read."""

    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_bytes(num_bytes: int) -> str:
    """Render a byte count with binary units, e.g. ``1536 -> "1.5 KB"``."""

    if num_bytes == 0:
        return "0 Bytes"
    k = 1024
    index = 0
    while index < len(BYTE_UNITS) - 1 and num_bytes >= k ** (index + 1):
        index += 1
    value = f"{num_bytes / k ** index:.2f}".rstrip("0").rstrip(".")
    return f"{value} {BYTE_UNITS[index]}"
