import asyncio
import json

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient

from comics.gateway import create_app
from comics.gateway.config import Settings, StoreConfig, Stores
from comics.gateway.exceptions import SynthesisError
from comics.gateway.synthesis import ImageSynthesizer

STYLES = {
    "tintin": {"name": "Tintin", "prompt": "ligne claire, flat colours"},
    "noir": {"name": "Noir", "prompt": "high contrast black and white"},
    "draft": {"name": "Draft"},  # no prompt: not a usable style
}


class FakeSynthesizer(ImageSynthesizer):
    """Records calls and holds every synthesis until ``release`` is set."""

    def __init__(self) -> None:
        self.calls: list[tuple[bytes, str, str]] = []
        self.release = asyncio.Event()
        self.fail_with: str | None = None
        self.output = b"\xff\xd8panel"
        self.closed = False
        self.running = 0
        self.max_running = 0

    async def synthesize(self, frame: bytes, content_type: str, prompt: str) -> bytes:
        self.calls.append((frame, content_type, prompt))
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await self.release.wait()
        finally:
            self.running -= 1
        if self.fail_with:
            raise SynthesisError(self.fail_with)
        return self.output

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def styles_file(tmp_path):
    path = tmp_path / "styles.json"
    path.write_text(json.dumps(STYLES))
    return path


@pytest.fixture
def settings(tmp_path, styles_file) -> Settings:
    return Settings(
        cors_origins=["*"],
        styles_file=str(styles_file),
        store_type=Stores.LOCAL,
        store_config=StoreConfig(path=str(tmp_path / "panels")),
        job_sweep_interval_seconds=3600,
        max_frame_bytes=1024,
    )


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest_asyncio.fixture
async def app(settings, synthesizer) -> FastAPI:
    app = create_app(settings, synthesizer=synthesizer)
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def wait_for_generations(app: FastAPI, timeout: float = 2.0) -> None:
    """Block until the pipeline has no running generation."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while app.state.pipeline.active:
        if loop.time() > deadline:
            raise AssertionError("generation did not finish")
        await asyncio.sleep(0.01)


@pytest.fixture
def settle(app):
    return lambda: wait_for_generations(app)
