"""Which panels the strip shows for a playback position, and what each slot looks like.

``compute_window`` picks up to ``size`` known keys; ``render_strip`` turns the
window into a fixed list of slots. Both are pure. Hosts keep the previous
``StripView`` and use ``diff_strip`` to decide what to redraw.
"""

from dataclasses import dataclass

from comics import buckets
from comics.client.session import PanelSession


@dataclass(frozen=True)
class Window:
    keys: tuple[str, ...]
    left_aligned: bool

    def slots(self, size: int) -> tuple[str | None, ...]:
        """Pad to ``size`` on the side opposite the alignment."""
        padding = (None,) * max(0, size - len(self.keys))
        return self.keys + padding if self.left_aligned else padding + self.keys


def compute_window(
    current_time: float,
    known_keys: list[str],
    size: int = 6,
    bootstrap_threshold: str = "01-30",
) -> Window:
    """Window ending at the anchor, or the first keys from the start early in playback.

    The anchor is the next bucket boundary after ``current_time`` if that key is
    known, else the latest known key before it, else the latest known key. Gaps
    in ``known_keys`` shrink the window; they are never padded.
    """
    keys = buckets.sort_keys(set(known_keys))
    if not keys:
        return Window(keys=(), left_aligned=True)

    target = buckets.next_bucket_key(current_time)
    if target in keys:
        anchor = target
    else:
        earlier = [k for k in keys if buckets.compare(k, target) <= 0]
        anchor = earlier[-1] if earlier else keys[-1]

    ending = [k for k in keys if buckets.compare(k, anchor) <= 0][-size:]

    if len(ending) < size and buckets.compare(anchor, bootstrap_threshold) <= 0:
        return Window(keys=tuple(keys[:size]), left_aligned=True)
    return Window(keys=tuple(ending), left_aligned=False)


@dataclass(frozen=True)
class Slot:
    key: str
    label: str
    url: str | None
    url_version: int
    placeholder: str | None
    placeholder_version: int

    @property
    def image(self) -> str | None:
        """What to draw: the real panel (cache-busted) if available, else the placeholder."""
        if self.url:
            return f"{self.url}?v={self.url_version}" if self.url_version else self.url
        return self.placeholder

    @property
    def is_placeholder(self) -> bool:
        return self.url is None and self.placeholder is not None

    @property
    def signature(self) -> tuple:
        return (self.key, self.url is not None, self.url_version, self.placeholder is not None, self.placeholder_version)


@dataclass(frozen=True)
class StripView:
    slots: tuple[Slot | None, ...]
    highlighted: str
    left_aligned: bool

    @property
    def visible(self) -> bool:
        return any(slot is not None for slot in self.slots)

    @property
    def signature(self) -> tuple:
        return tuple(slot.signature if slot else None for slot in self.slots)


@dataclass(frozen=True)
class StripDiff:
    changed_slots: tuple[int, ...]
    highlight_changed: bool

    @property
    def unchanged(self) -> bool:
        return not self.changed_slots and not self.highlight_changed


def _slot(session: PanelSession, key: str) -> Slot:
    panel = session.available.get(key)
    placeholder = session.placeholders.get(key)
    return Slot(
        key=key,
        label=buckets.to_display(key),
        url=panel.url if panel else None,
        url_version=panel.version if panel else 0,
        placeholder=placeholder.data_uri if placeholder else None,
        placeholder_version=placeholder.version if placeholder else 0,
    )


def render_strip(
    session: PanelSession,
    current_time: float,
    size: int = 6,
    bootstrap_threshold: str = "01-30",
) -> StripView:
    """Fixed-size slot list for the current playback position.

    The highlighted key is the bucket being played (``00-00`` for 0-14s), not
    the window's anchor.
    """
    window = compute_window(current_time, session.known_keys(), size, bootstrap_threshold)
    slots = tuple(_slot(session, key) if key else None for key in window.slots(size))
    return StripView(slots=slots, highlighted=buckets.to_key(current_time), left_aligned=window.left_aligned)


def diff_strip(previous: StripView | None, current: StripView) -> StripDiff:
    """Slots whose content changed, plus whether only the highlight moved."""
    if previous is None or len(previous.slots) != len(current.slots):
        return StripDiff(changed_slots=tuple(range(len(current.slots))), highlight_changed=True)
    changed = tuple(
        i
        for i, (before, after) in enumerate(zip(previous.slots, current.slots))
        if (before.signature if before else None) != (after.signature if after else None)
    )
    return StripDiff(changed_slots=changed, highlight_changed=previous.highlighted != current.highlighted)
