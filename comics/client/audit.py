"""Operator view over every panel of one video and style."""

from collections.abc import Callable

import httpx
from loguru import logger

from comics import buckets
from comics.client.api import PanelClientError, PanelsClient
from comics.client.prober import ScanResult, scan

AUDIT_CONCURRENCY = 8


class PanelAudit:
    def __init__(self, client: PanelsClient, video: str, style: str, max_seconds: float = 3600) -> None:
        self.client = client
        self.video = video
        self.style = style
        self.max_seconds = max_seconds
        self.panels: dict[str, str] = {}

    @property
    def keys(self) -> list[str]:
        return buckets.sort_keys(self.panels)

    async def load(
        self,
        concurrency: int = AUDIT_CONCURRENCY,
        on_progress: Callable[[ScanResult, str], None] | None = None,
    ) -> ScanResult:
        result = await scan(
            buckets.keys_in_range(self.max_seconds),
            concurrency,
            lambda key: self.client.get_status(self.video, self.style, key),
            on_found=self.panels.__setitem__,
            on_progress=on_progress,
        )
        logger.info(f"Audit {self.video}/{self.style}: {len(self.panels)} panel(s), {result.scanned} bucket(s) scanned")
        return result

    async def delete(self, key: str) -> None:
        """Remove ``key`` right away; put it back if the gateway refuses. Re-raises the failure."""
        url = self.panels.pop(key, None)
        try:
            await self.client.delete_panel(self.video, self.style, key)
        except (PanelClientError, httpx.HTTPError):
            if url is not None:
                self.panels[key] = url
            raise
        logger.info(f"Deleted panel {self.video}/{self.style}/{key}")
