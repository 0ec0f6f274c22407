"""Style catalog and prompt construction.

The catalog is a JSON object mapping a style name to its definition, e.g.::

    {"tintin": {"name": "Tintin", "prompt": "ligne claire, flat colours ..."}}

Only names present in the catalog are valid panel styles.
"""

import json
from pathlib import Path
from typing import Any

from loguru import logger

DEFAULT_STYLE_TEXT = "a comic book style"

PROMPT_TEMPLATE = """Reimagine this frame as ONE comic-book panel.
Style: $STYLE

Redraw the whole scene as NEW comic art (not a filter, not a paint-over).
Keep the same characters + action + camera angle.
Make it legible at 300x300: clear silhouettes, clean shapes, strong contrast.
Clean line art, coherent perspective; no abstract blobs; no unfinished areas.
Square 512x512 composition; center the main subject.
No border around the edge. No text, captions, bubbles, watermarks, or UI overlays.
Ignore and remove any on-screen debug/timestamp/resolution text from the source.
"""


class StyleCatalog:
    def __init__(self, styles: dict[str, dict[str, Any]]):
        self._styles = styles

    @classmethod
    def from_file(cls, path: str | Path) -> "StyleCatalog":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Style catalog {path} must be a JSON object, got {type(data).__name__}")
        logger.info(f"Loaded {len(data)} style(s) from {path}")
        return cls(data)

    def __contains__(self, style: object) -> bool:
        return self.prompt_for(style) is not None if isinstance(style, str) else False

    def __len__(self) -> int:
        return len(self._styles)

    def prompt_for(self, style: str) -> str | None:
        """Style text for ``style``; entries without a prompt don't count as styles."""
        entry = self._styles.get(style)
        if not isinstance(entry, dict):
            return None
        return entry.get("prompt") or None

    def build_prompt(self, style: str) -> str:
        return PROMPT_TEMPLATE.replace("$STYLE", self.prompt_for(style) or DEFAULT_STYLE_TEXT)

    def as_dict(self) -> dict[str, dict[str, Any]]:
        return dict(self._styles)
