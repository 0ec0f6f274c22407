"""Per-playback client state shared by the render, trigger and discovery loops.

One session is built when playback starts and thrown away when it ends. All
three loops run on one event loop, so plain containers are enough; what
matters is that every mutation goes through these methods.
"""

from dataclasses import dataclass, field

from loguru import logger

from comics import buckets
from comics.client.placeholders import PlaceholderCache, next_version


@dataclass(frozen=True)
class AvailablePanel:
    url: str
    version: int


@dataclass
class PanelSession:
    video: str
    style: str

    available: dict[str, AvailablePanel] = field(default_factory=dict)
    placeholders: PlaceholderCache = field(default_factory=PlaceholderCache)
    in_flight: set[str] = field(default_factory=set)

    # Trigger markers, scoped to the current stretch of continuous playback
    last_bucket: int | None = None
    user_buckets: set[int] = field(default_factory=set)
    requested_buckets: set[int] = field(default_factory=set)
    fired_keyframes: set[str] = field(default_factory=set)

    def job_key(self, key: str) -> str:
        return f"{self.video}/{self.style}/{key}"

    def is_available(self, key: str) -> bool:
        return key in self.available

    def is_pending(self, key: str) -> bool:
        return key in self.placeholders and key not in self.available

    def url_for(self, key: str) -> str | None:
        panel = self.available.get(key)
        return panel.url if panel else None

    def mark_available(self, key: str, url: str) -> None:
        """Record a ready panel. Clears its placeholder; the pending -> available move is one-way."""
        if not key or not url:
            return
        current = self.available.get(key)
        if current is None or current.url != url:
            self.available[key] = AvailablePanel(url=url, version=next_version(current.version if current else 0))
        self.placeholders.clear(key)

    def mark_pending(self, key: str, data_uri: str) -> bool:
        """Show ``data_uri`` for ``key`` until the real panel arrives.

        Ignored for panels already available (a forced regeneration keeps the
        old image on screen until the new one replaces it).
        """
        if key in self.available:
            logger.debug(f"{self.job_key(key)} already available, keeping it over the placeholder")
            return False
        self.placeholders.set(key, data_uri)
        return True

    def refresh(self, key: str, url: str) -> None:
        """A regenerated panel at the same URL: bump its version so the image is reloaded."""
        current = self.available.get(key)
        self.available[key] = AvailablePanel(url=url, version=next_version(current.version if current else 0))
        self.placeholders.clear(key)

    def forget(self, key: str) -> None:
        """Drop everything known about ``key`` (after an explicit delete)."""
        self.available.pop(key, None)
        self.placeholders.clear(key)

    def known_keys(self) -> list[str]:
        """Available and pending keys in bucket order."""
        return buckets.sort_keys(set(self.available) | self.placeholders.keys())

    def has_anything(self) -> bool:
        return bool(self.available) or len(self.placeholders) > 0

    def reset_markers(self) -> None:
        """Forget trigger history after a seek: the user left the interval it was about."""
        self.last_bucket = None
        self.user_buckets.clear()
        self.requested_buckets.clear()
        self.fired_keyframes.clear()
