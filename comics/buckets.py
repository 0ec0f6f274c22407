"""Time bucket keys.

Every panel is addressed by the start of the 15 second interval it belongs to,
written as ``MM-SS`` (minutes zero-padded to at least two digits). Both sides of
the system go through these helpers so the server, the store layout and the
playback strip agree on one spelling.
"""

import math
import re

BUCKET_SECONDS = 15

# mm-ss is canonical, mm:ss is what people type and what timecode overlays show
_INPUT_PATTERN = re.compile(r"^(\d{1,3})[-:](\d{2})$")
_CANONICAL_PATTERN = re.compile(r"^(\d{2,})-(\d{2})$")


def format_key(seconds: float) -> str:
    """Format a time as ``MM-SS`` without bucketing (75 -> ``01-15``)."""
    s = max(0, math.floor(seconds))
    return f"{s // 60:02d}-{s % 60:02d}"


def bucket_start(seconds: float) -> int:
    """Start of the bucket containing ``seconds``, in whole seconds."""
    return math.floor(max(0.0, seconds) / BUCKET_SECONDS) * BUCKET_SECONDS


def to_key(seconds: float) -> str:
    """Key of the bucket containing ``seconds``. Negative input clamps to ``00-00``."""
    return format_key(bucket_start(seconds))


def next_bucket_start(seconds: float) -> int:
    return bucket_start(seconds) + BUCKET_SECONDS


def next_bucket_key(seconds: float) -> str:
    """Key of the first bucket boundary strictly after ``seconds``."""
    return format_key(next_bucket_start(seconds))


def parse(text: str | None) -> str | None:
    """Normalize ``mm-ss`` / ``mm:ss`` input to the canonical key.

    Returns None for anything else; seconds above 59 are rejected rather than
    carried into minutes.
    """
    raw = str(text if text is not None else "").strip()
    if not raw:
        return None
    m = _INPUT_PATTERN.match(raw)
    if not m:
        return None
    mm, ss = int(m.group(1)), int(m.group(2))
    if ss > 59:
        return None
    return f"{mm:02d}-{ss:02d}"


def to_seconds(key: str) -> int | None:
    """Inverse of :func:`format_key` for canonical keys only."""
    m = _CANONICAL_PATTERN.match(str(key).strip())
    if not m:
        return None
    mm, ss = int(m.group(1)), int(m.group(2))
    if ss > 59:
        return None
    return mm * 60 + ss


def sort_key(key: str) -> tuple[int, str]:
    """Ordering for canonical keys.

    Matches plain string order while minutes fit in two digits, and keeps
    numeric order past the 100 minute mark where string order would not.
    """
    seconds = to_seconds(key)
    return (seconds if seconds is not None else -1, key)


def sort_keys(keys) -> list[str]:
    return sorted(keys, key=sort_key)


def compare(a: str, b: str) -> int:
    ka, kb = sort_key(a), sort_key(b)
    return (ka > kb) - (ka < kb)


def to_display(key: str) -> str:
    """``01-15`` -> ``01:15``."""
    return str(key).replace("-", ":", 1)


def keys_in_range(max_seconds: float, step: int = BUCKET_SECONDS) -> list[str]:
    """Every bucket key from ``00-00`` up to and including ``max_seconds``."""
    return [format_key(t) for t in range(0, math.floor(max(0.0, max_seconds)) + 1, step)]
