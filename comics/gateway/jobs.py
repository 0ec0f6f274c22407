"""In-process job registry: one record per panel identity.

The registry is the only place that decides whether a generation may start, so
``begin_generating`` is the single mutual-exclusion point of the gateway. It is
volatile by nature: records expire after ``ttl_seconds`` regardless of state and
status queries then fall back to the artifact store.
"""

import asyncio
import itertools
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum, auto

from loguru import logger

from comics.contracts import PanelIdentity


class JobState(StrEnum):
    GENERATING = auto()
    READY = auto()
    ERROR = auto()


@dataclass(frozen=True)
class JobRecord:
    state: JobState
    started_at: float
    url: str | None = None
    error: str | None = None
    generation: int = 0


class JobRegistry:
    def __init__(
        self,
        ttl_seconds: float = 300,
        sweep_interval_seconds: float = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._jobs: dict[PanelIdentity, JobRecord] = {}
        self._generations = itertools.count(1)
        self._lock = threading.Lock()
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def get(self, identity: PanelIdentity) -> JobRecord | None:
        with self._lock:
            return self._jobs.get(identity)

    def begin_generating(self, identity: PanelIdentity) -> int | None:
        """Atomically claim ``identity`` for a new generation.

        Returns the generation token the caller must pass back to
        :meth:`complete` / :meth:`fail`, or None if a generation is already
        active. Finished records (ready or error) are replaced, which is how a
        retry or a forced overwrite starts.
        """
        with self._lock:
            current = self._jobs.get(identity)
            if current is not None and current.state == JobState.GENERATING:
                return None
            generation = next(self._generations)
            self._jobs[identity] = JobRecord(
                state=JobState.GENERATING, started_at=self._clock(), generation=generation
            )
            return generation

    def complete(self, identity: PanelIdentity, url: str, generation: int | None = None) -> bool:
        return self._finish(identity, generation, JobState.READY, url=url)

    def fail(self, identity: PanelIdentity, message: str, generation: int | None = None) -> bool:
        return self._finish(identity, generation, JobState.ERROR, error=message)

    def _finish(self, identity: PanelIdentity, generation: int | None, state: JobState, **fields) -> bool:
        """Record an outcome. With a token, only the generation that still owns the record may write it."""
        with self._lock:
            if generation is not None:
                current = self._jobs.get(identity)
                if current is None or current.generation != generation:
                    logger.debug(f"Dropping stale {state} for {identity} (generation {generation})")
                    return False
            self._jobs[identity] = JobRecord(
                state=state, started_at=self._clock(), generation=generation or 0, **fields
            )
            return True

    def discard(self, identity: PanelIdentity) -> None:
        with self._lock:
            self._jobs.pop(identity, None)

    def sweep(self) -> int:
        """Drop records older than the TTL, whatever their state. Returns how many were dropped."""
        cutoff = self._clock() - self._ttl
        with self._lock:
            stale = [identity for identity, record in self._jobs.items() if record.started_at < cutoff]
            for identity in stale:
                del self._jobs[identity]
        if stale:
            logger.debug(f"Swept {len(stale)} expired job record(s)")
        return len(stale)

    async def start(self) -> None:
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        with self._lock:
            self._jobs.clear()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception as e:
                logger.exception(f"Job sweep failed: {e}")
