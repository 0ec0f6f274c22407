"""Stand-in imagery for panels that are still generating.

A placeholder is the captured frame, blurred and darkened, kept as a JPEG data
URI. Every ``set`` bumps the key's version so a renderer can tell that the slot
changed even when the key itself did not.
"""

import base64
import io
import time
from dataclasses import dataclass

from PIL import Image, ImageFilter


def next_version(previous: int = 0) -> int:
    """Time-based token, strictly greater than ``previous``."""
    return max(time.time_ns() // 1_000_000, previous + 1)


@dataclass(frozen=True)
class Placeholder:
    data_uri: str
    version: int


class PlaceholderCache:
    def __init__(self) -> None:
        self._entries: dict[str, Placeholder] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> set[str]:
        return set(self._entries)

    def get(self, key: str) -> Placeholder | None:
        return self._entries.get(key)

    def version(self, key: str) -> int:
        entry = self._entries.get(key)
        return entry.version if entry else 0

    def set(self, key: str, data_uri: str) -> int:
        version = next_version(self.version(key))
        self._entries[key] = Placeholder(data_uri=data_uri, version=version)
        return version

    def clear(self, key: str) -> None:
        self._entries.pop(key, None)

    def reset(self) -> None:
        self._entries.clear()


def square_crop(image: Image.Image, size: int) -> Image.Image:
    """Center-crop to a square and resize to ``size`` x ``size``."""
    width, height = image.size
    if not width or not height:
        raise ValueError("frame has no pixels (video metadata not ready?)")
    side = min(width, height)
    left = (width - side) // 2
    top = (height - side) // 2
    return image.crop((left, top, left + side, top + side)).resize((size, size), Image.Resampling.LANCZOS)


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def capture_frame(image: Image.Image, size: int = 1024, quality: int = 85) -> bytes:
    """The JPEG uploaded for generation."""
    return encode_jpeg(square_crop(image, size), quality)


def make_placeholder(
    image: Image.Image,
    size: int = 512,
    blur: float = 18,
    darken: float = 0.5,
    quality: int = 82,
) -> str:
    """Blurred, darkened square of the frame as a ``data:image/jpeg`` URI."""
    square = square_crop(image, size).convert("RGB").filter(ImageFilter.GaussianBlur(blur))
    shaded = Image.blend(square, Image.new("RGB", square.size, (0, 0, 0)), darken)
    encoded = base64.b64encode(encode_jpeg(shaded, quality)).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"
