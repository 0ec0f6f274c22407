"""Panel generation: external image synthesis, upload, and job bookkeeping.

Decoupled from transport: the POST handler only claims the job and calls
:meth:`GenerationPipeline.launch`; the outcome reaches callers through the
job registry.
"""

import asyncio
import base64
import time
from abc import ABC, abstractmethod

import httpx
from loguru import logger

from comics.contracts import PanelIdentity
from comics.gateway.exceptions import SynthesisError
from comics.gateway.jobs import JobRegistry
from comics.gateway.storage import ArtifactStore, object_key
from comics.gateway.styles import StyleCatalog

OPENAI_API_BASE = "https://api.openai.com/v1"


class ImageSynthesizer(ABC):
    @abstractmethod
    async def synthesize(self, frame: bytes, content_type: str, prompt: str) -> bytes:
        """Return JPEG bytes for the restyled frame. Raise SynthesisError on failure."""

    async def close(self) -> None:
        pass


class OpenAIImageSynthesizer(ImageSynthesizer):
    """Restyles a frame with the OpenAI image edits endpoint. No retries: a failed panel is retried by the caller."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-image-1",
        size: str = "1024x1024",
        output_compression: int = 85,
        timeout_seconds: float = 180.0,
    ):
        self._api_key = api_key
        self._model = model
        self._size = size
        self._output_compression = output_compression
        self._client = httpx.AsyncClient(base_url=OPENAI_API_BASE, timeout=timeout_seconds)

    async def synthesize(self, frame: bytes, content_type: str, prompt: str) -> bytes:
        is_png = "png" in (content_type or "")
        files = {
            "image[]": (
                "frame.png" if is_png else "frame.jpg",
                frame,
                "image/png" if is_png else "image/jpeg",
            )
        }
        data = {
            "model": self._model,
            "prompt": prompt,
            "size": self._size,
            "output_format": "jpeg",
            "output_compression": str(self._output_compression),
        }
        try:
            response = await self._client.post(
                "/images/edits",
                data=data,
                files=files,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as e:
            raise SynthesisError(f"Image API request failed: {e}") from e

        if response.is_error:
            logger.warning(f"images/edits error {response.status_code}: {response.text[:500]}")
            raise SynthesisError(f"Image API returned {response.status_code}")

        try:
            b64 = response.json()["data"][0]["b64_json"]
        except (ValueError, KeyError, IndexError, TypeError):
            b64 = None
        if not b64:
            logger.warning(f"images/edits returned no image: {response.text[:500]}")
            raise SynthesisError("Image API returned no image")

        return base64.b64decode(b64)

    async def close(self) -> None:
        await self._client.aclose()


class GenerationPipeline:
    def __init__(
        self,
        registry: JobRegistry,
        store: ArtifactStore,
        synthesizer: ImageSynthesizer,
        styles: StyleCatalog,
        key_prefix: str = "",
    ) -> None:
        self._registry = registry
        self._store = store
        self._synthesizer = synthesizer
        self._styles = styles
        self._key_prefix = key_prefix
        self._tasks: dict[PanelIdentity, asyncio.Task] = {}

    @property
    def active(self) -> int:
        return len(self._tasks)

    async def run(self, frame: bytes, content_type: str, prompt: str, identity: PanelIdentity) -> str:
        """Synthesize, upload and return the public URL. Raises SynthesisError."""
        image = await self._synthesizer.synthesize(frame, content_type, prompt)
        if not image:
            raise SynthesisError("Image API returned an empty image")
        key = object_key(identity, self._key_prefix)
        try:
            return await self._store.put(key, image, "image/jpeg")
        except Exception as e:
            raise SynthesisError(f"Upload failed: {e}") from e

    def launch(
        self, identity: PanelIdentity, frame: bytes, content_type: str, generation: int | None = None
    ) -> asyncio.Task:
        """Run the pipeline detached. The caller must already own the job (``begin_generating``).

        ``generation`` is the token from the claim; the outcome is only recorded
        while the registry still holds that generation.
        """
        task = asyncio.create_task(self._generate(identity, frame, content_type), name=f"generate:{identity}")
        self._tasks[identity] = task
        task.add_done_callback(lambda t, i=identity, g=generation: self._on_done(i, t, g))
        return task

    async def cancel(self, identity: PanelIdentity) -> bool:
        """Cancel the running generation for ``identity`` and wait for it to unwind."""
        task = self._tasks.pop(identity, None)
        if task is None:
            return False
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return True

    async def _generate(self, identity: PanelIdentity, frame: bytes, content_type: str) -> str:
        prompt = self._styles.build_prompt(identity.style)
        log = logger.bind(video=identity.video, style=identity.style, bucket=identity.bucket)
        log.info(f"Generating {identity}")
        started = time.monotonic()
        try:
            url = await self.run(frame, content_type, prompt, identity)
        except SynthesisError as e:
            log.warning(f"Generation failed for {identity} after {time.monotonic() - started:.1f}s: {e}")
            raise
        log.info(f"{url} - {time.monotonic() - started:.1f}s")
        return url

    def _on_done(self, identity: PanelIdentity, task: asyncio.Task, generation: int | None = None) -> None:
        if self._tasks.get(identity) is task:
            del self._tasks[identity]

        if task.cancelled():
            self._registry.fail(identity, "Generation cancelled", generation)
            return
        exc = task.exception()
        if exc is None:
            self._registry.complete(identity, task.result(), generation)
        elif isinstance(exc, SynthesisError):
            self._registry.fail(identity, str(exc), generation)
        else:
            logger.opt(exception=exc).error(f"Generation crashed for {identity}: {exc}")
            self._registry.fail(identity, f"Internal error: {exc}", generation)

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        await self._synthesizer.close()
