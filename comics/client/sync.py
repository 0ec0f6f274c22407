"""Keeps a panel strip in sync with a playing video.

Four cooperative activities share one :class:`PanelSession`: the render tick,
the trigger tick, the curated-keyframe tick and the discovery scan at start.
Generation requests are spawned as tasks so a slow panel never stalls a tick.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol

from loguru import logger
from PIL import Image

from comics import buckets
from comics.client.api import PanelsClient
from comics.client.config import SyncConfig
from comics.client.prober import ScanResult, discover
from comics.client.session import PanelSession
from comics.client.trigger import TriggerPolicy, ensure_panel
from comics.client.window import StripDiff, StripView, diff_strip, render_strip

StripRenderer = Callable[[StripView | None, StripDiff], None]


class Player(Protocol):
    """The embedding video player, as far as panel sync needs it."""

    @property
    def current_time(self) -> float: ...

    @property
    def duration(self) -> float | None: ...

    @property
    def paused(self) -> bool: ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def seek(self, seconds: float) -> None: ...

    def snapshot(self) -> Image.Image:
        """Current frame. Raises ValueError while no frame is decoded yet."""
        ...


class PlaybackSync:
    def __init__(
        self,
        client: PanelsClient,
        player: Player,
        video: str,
        style: str,
        config: SyncConfig | None = None,
        renderer: StripRenderer | None = None,
        policy: TriggerPolicy | None = None,
    ) -> None:
        self.client = client
        self.player = player
        self.config = config or SyncConfig()
        self.renderer = renderer
        self.policy = policy or TriggerPolicy()
        self.session = PanelSession(video=video, style=style)
        self.last_view: StripView | None = None
        self._tasks: list[asyncio.Task] = []
        self._requests: set[asyncio.Task] = set()

    # -- rendering -----------------------------------------------------------

    def render(self) -> StripView | None:
        """Recompute the strip; call the renderer only when something visible changed.

        Returns None (and hides the strip) while there is nothing to show.
        """
        if not self.session.has_anything():
            if self.last_view is not None and self.renderer:
                self.renderer(None, StripDiff(changed_slots=(), highlight_changed=True))
            self.last_view = None
            return None

        view = render_strip(
            self.session,
            self.player.current_time,
            size=self.config.window_size,
            bootstrap_threshold=self.config.bootstrap_threshold,
        )
        diff = diff_strip(self.last_view, view)
        self.last_view = view
        if not diff.unchanged and self.renderer:
            self.renderer(view, diff)
        return view

    # -- triggers ------------------------------------------------------------

    def request(self, key: str, force: bool = False) -> asyncio.Task:
        task = asyncio.create_task(
            ensure_panel(
                self.client,
                self.session,
                key,
                self.player.snapshot,
                self.config,
                force=force,
                on_change=self.render,
            ),
            name=f"panel:{self.session.job_key(key)}",
        )
        self._requests.add(task)
        task.add_done_callback(self._request_done)
        return task

    def _request_done(self, task: asyncio.Task) -> None:
        self._requests.discard(task)
        if not task.cancelled() and (exc := task.exception()) is not None:
            logger.opt(exception=exc).error(f"Panel request {task.get_name()} crashed: {exc}")

    def trigger_tick(self) -> asyncio.Task | None:
        current = self.player.current_time
        if current < 0:
            return None
        key = self.policy.automatic(self.session, current)
        if key is None:
            return None
        logger.info(f"[comics] keyframe bucket={key} time={current:.2f}")
        return self.request(key)

    def keyframe_tick(self) -> asyncio.Task | None:
        keyframes = self.config.keyframes.get(self.session.video, [])
        if not keyframes:
            return None
        key = self.policy.keyframe(self.session, self.player.current_time, keyframes)
        if key is None:
            return None
        logger.info(f"[comics] curated keyframe -> bucket={key}")
        return self.request(key, force=True)

    def request_next(self) -> asyncio.Task:
        """Explicit user action: (re)generate the next bucket now."""
        current = self.player.current_time
        key = self.policy.user_action(self.session, current)
        logger.info(f"[comics] ENTER bucket={key} time={current:.2f}")
        return self.request(key, force=True)

    # -- transport controls --------------------------------------------------

    async def skip(self, seconds: float) -> None:
        """Seek by ``seconds``, landing on a bucket boundary, and start trigger history afresh."""
        target = buckets.bucket_start(self.player.current_time + seconds)
        await self.player.seek(target)
        self.session.reset_markers()
        self.last_view = None
        logger.info(f"[comics] skip to {target}")
        self.render()

    async def play_pause(self) -> None:
        if self.player.paused:
            # Replaying from the start re-arms curated keyframes
            if self.player.current_time < 0.5:
                self.session.reset_markers()
            await self.player.play()
        else:
            await self.player.pause()

    # -- discovery -----------------------------------------------------------

    async def wait_for_duration(self) -> float | None:
        for _ in range(self.config.duration_wait_attempts):
            duration = self.player.duration
            if duration and duration > 0:
                return duration
            await asyncio.sleep(self.config.duration_wait_interval)
        return None

    async def discover(self) -> ScanResult:
        duration = await self.wait_for_duration() or self.config.discovery_fallback_seconds
        result = await discover(
            self.client,
            self.session,
            min(duration, self.config.discovery_max_seconds),
            min_found=self.config.discovery_min_found,
            concurrency=self.config.discovery_concurrency,
            delay=self.config.discovery_probe_delay,
            on_found=lambda key, url: self.render(),
        )
        self.render()
        return result

    # -- lifecycle -----------------------------------------------------------

    async def _every(self, interval: float, tick: Callable[[], object]) -> None:
        while True:
            try:
                tick()
            except Exception as e:
                logger.exception(f"Tick {getattr(tick, '__name__', tick)} failed: {e}")
            await asyncio.sleep(interval)

    async def _guarded(self, coro: Awaitable[object], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"{name} failed: {e}")

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._guarded(self.discover(), "Discovery")),
            asyncio.create_task(self._every(self.config.render_interval, self.render)),
            asyncio.create_task(self._every(self.config.trigger_interval, self.trigger_tick)),
            asyncio.create_task(self._every(self.config.keyframe_interval, self.keyframe_tick)),
        ]
        logger.info(f"Panel sync started for {self.session.video}/{self.session.style}")

    async def stop(self) -> None:
        tasks = self._tasks + list(self._requests)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._requests.clear()
