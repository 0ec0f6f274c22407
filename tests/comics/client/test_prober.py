import asyncio
import random

import httpx
import pytest

from comics import buckets
from comics.client.api import PanelReply
from comics.client.prober import discover, scan
from comics.client.session import PanelSession
from comics.contracts import StatusResponse


def ready(key: str) -> PanelReply:
    return PanelReply(http=200, body=StatusResponse.ready(f"/v1/files/vid/noir/{key}.jpg"))


MISSING = PanelReply(http=404, body=StatusResponse.missing())


class FakeServer:
    """Answers status probes for a fixed set of existing keys, tracking concurrency."""

    def __init__(self, existing: set[str], jitter: bool = False):
        self.existing = existing
        self.jitter = jitter
        self.in_flight = 0
        self.max_in_flight = 0
        self.probed: list[str] = []

    async def probe(self, key: str) -> PanelReply:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.probed.append(key)
        try:
            await asyncio.sleep(random.uniform(0, 0.005) if self.jitter else 0)
            return ready(key) if key in self.existing else MISSING
        finally:
            self.in_flight -= 1

    async def get_status(self, video: str, style: str, key: str) -> PanelReply:
        return await self.probe(key)


@pytest.mark.asyncio
async def test_scan_respects_concurrency_limit():
    keys = buckets.keys_in_range(600)
    server = FakeServer({"00-15", "05-00", "09-45"}, jitter=True)

    result = await scan(keys, 8, server.probe)

    assert server.max_in_flight <= 8
    assert result.scanned == len(keys)
    assert [k for k, _ in result.sorted_found()] == ["00-15", "05-00", "09-45"]
    assert result.found["05-00"] == "/v1/files/vid/noir/05-00.jpg"


@pytest.mark.asyncio
async def test_scan_stops_after_enough_hits():
    keys = buckets.keys_in_range(600)
    server = FakeServer(set(keys[:10]))

    result = await scan(keys, 1, server.probe, stop_after=6)

    assert result.stopped_early
    assert len(result.found) == 6
    assert result.scanned == 6


@pytest.mark.asyncio
async def test_scan_counts_failures_and_continues():
    async def probe(key: str) -> PanelReply:
        if key == "00-15":
            raise httpx.ConnectError("refused")
        return ready(key) if key == "00-30" else MISSING

    progress: list[str] = []
    result = await scan(["00-00", "00-15", "00-30"], 2, probe, on_progress=lambda r, key: progress.append(key))

    assert result.failed == 1
    assert result.scanned == 3
    assert list(result.found) == ["00-30"]
    assert sorted(progress) == ["00-00", "00-15", "00-30"]


@pytest.mark.asyncio
async def test_scan_of_nothing():
    result = await scan([], 4, FakeServer(set()).probe)
    assert result.scanned == 0
    assert not result.found


@pytest.mark.asyncio
async def test_discover_records_into_session():
    server = FakeServer({"00-15", "00-30", "02-00"})
    session = PanelSession(video="vid", style="noir")
    hits: list[str] = []

    result = await discover(server, session, 150, delay=0, on_found=lambda key, url: hits.append(key))

    assert server.probed == buckets.keys_in_range(150)
    assert session.known_keys() == ["00-15", "00-30", "02-00"]
    assert hits == ["00-15", "00-30", "02-00"]
    assert not result.stopped_early
