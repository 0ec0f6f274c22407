"""Bounded-concurrency scanning for panels that already exist.

Two uses: discovery when playback starts (stop after a handful of hits) and
the operator audit (walk the whole range).
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field

import httpx
from loguru import logger

from comics import buckets
from comics.client.api import PanelReply, PanelsClient
from comics.client.session import PanelSession

Probe = Callable[[str], Awaitable[PanelReply]]


@dataclass
class ScanResult:
    found: dict[str, str] = field(default_factory=dict)  # key -> url
    scanned: int = 0
    failed: int = 0
    stopped_early: bool = False

    def sorted_found(self) -> list[tuple[str, str]]:
        return [(key, self.found[key]) for key in buckets.sort_keys(self.found)]


async def scan(
    keys: Iterable[str],
    limit: int,
    probe: Probe,
    *,
    stop_after: int | None = None,
    delay: float = 0.0,
    on_found: Callable[[str, str], None] | None = None,
    on_progress: Callable[[ScanResult, str], None] | None = None,
) -> ScanResult:
    """Probe ``keys`` with at most ``limit`` requests in flight.

    Results may arrive out of order; each key's outcome is recorded against
    that key. With ``stop_after`` set, no new probes start once that many
    ready panels were found (probes already running still finish).
    """
    queue = list(keys)
    result = ScanResult()
    position = 0

    async def worker() -> None:
        nonlocal position
        while position < len(queue):
            if stop_after is not None and len(result.found) >= stop_after:
                result.stopped_early = True
                return
            key = queue[position]
            position += 1
            try:
                reply = await probe(key)
            except httpx.HTTPError as e:
                result.failed += 1
                logger.warning(f"Probe failed for {key}: {e}")
                reply = None
            result.scanned += 1
            if reply is not None and (url := reply.ready_url):
                result.found[key] = url
                if on_found:
                    on_found(key, url)
            if on_progress:
                on_progress(result, key)
            if delay:
                await asyncio.sleep(delay)

    workers = [asyncio.create_task(worker()) for _ in range(max(1, min(limit, len(queue))))]
    try:
        await asyncio.gather(*workers)
    finally:
        for task in workers:
            task.cancel()
    return result


async def discover(
    client: PanelsClient,
    session: PanelSession,
    max_seconds: float,
    *,
    min_found: int = 6,
    concurrency: int = 1,
    delay: float = 0.04,
    on_found: Callable[[str, str], None] | None = None,
) -> ScanResult:
    """Find already-generated panels from ``00-00`` onwards and record them in ``session``."""

    def record(key: str, url: str) -> None:
        session.mark_available(key, url)
        if on_found:
            on_found(key, url)

    result = await scan(
        buckets.keys_in_range(max_seconds),
        concurrency,
        lambda key: client.get_status(session.video, session.style, key),
        stop_after=min_found,
        delay=delay,
        on_found=record,
    )
    logger.info(
        f"Discovery for {session.video}/{session.style}: {len(result.found)} panel(s) in {result.scanned} probe(s)"
    )
    return result
