"""When to ask for a panel, and the request/poll flow that follows."""

import asyncio
from collections.abc import Callable

import httpx
from loguru import logger
from PIL import Image

from comics import buckets
from comics.client.api import PanelsClient
from comics.client.config import SyncConfig
from comics.client.placeholders import capture_frame, make_placeholder
from comics.client.session import PanelSession

FrameSource = Callable[[], Image.Image]


class TriggerPolicy:
    """Maps playback progress and user actions to bucket keys worth generating.

    Automatic triggers fire once on entering a bucket, never for ``00-00``
    (usually a title card), and never for a bucket a user action or curated
    keyframe already asked for. A user action targets the *next* bucket and
    marks the current interval so curated keyframes don't repeat it.
    """

    def automatic(self, session: PanelSession, current_time: float) -> str | None:
        bucket = buckets.bucket_start(current_time)
        if bucket == session.last_bucket:
            return None
        session.last_bucket = bucket
        if bucket == 0 or bucket in session.requested_buckets:
            return None
        return buckets.format_key(bucket)

    def user_action(self, session: PanelSession, current_time: float) -> str:
        bucket = buckets.bucket_start(current_time)
        session.user_buckets.add(bucket)
        return self._request_next(session, bucket)

    def keyframe(self, session: PanelSession, current_time: float, keyframes: list[str]) -> str | None:
        """Curated moments act like a user action, once each, unless the user already acted in that interval."""
        stamp = buckets.to_display(buckets.format_key(current_time))
        if stamp not in keyframes or stamp in session.fired_keyframes:
            return None
        session.fired_keyframes.add(stamp)

        bucket = buckets.bucket_start(current_time)
        if bucket in session.user_buckets:
            return None
        session.user_buckets.add(bucket)
        return self._request_next(session, bucket)

    def _request_next(self, session: PanelSession, bucket: int) -> str:
        target = bucket + buckets.BUCKET_SECONDS
        session.requested_buckets.add(target)
        return buckets.format_key(target)


async def ensure_panel(
    client: PanelsClient,
    session: PanelSession,
    key: str,
    frame_source: FrameSource,
    config: SyncConfig,
    force: bool = False,
    on_change: Callable[[], None] | None = None,
) -> str | None:
    """Make sure ``key`` exists, generating it from the current frame if needed.

    Returns the panel URL, or None on error, timeout, or when this client is
    already pursuing the key. None never means "give up for good": the key
    stays eligible for a later attempt.
    """
    notify = on_change or (lambda: None)
    job_key = session.job_key(key)
    log = logger.bind(video=session.video, style=session.style, bucket=key)

    if not force and (url := session.url_for(key)):
        log.debug(f"Already have {job_key}")
        return url
    if key in session.in_flight:
        log.debug(f"Already in flight: {job_key}")
        return None

    session.in_flight.add(key)
    try:
        status = await client.get_status(session.video, session.style, key)
        if url := status.ready_url:
            session.mark_available(key, url)
            notify()
            if not force:
                log.info(f"READY (cache) {job_key}")
                return url
            log.info(f"Force overwrite requested, regenerating {job_key}")

        if force or status.is_missing:
            image = frame_source()
            try:
                placeholder = make_placeholder(
                    image,
                    size=config.placeholder_size,
                    blur=config.placeholder_blur,
                    darken=config.placeholder_darken,
                    quality=config.placeholder_quality,
                )
                if session.mark_pending(key, placeholder):
                    notify()
            except (OSError, ValueError) as e:
                log.warning(f"Placeholder capture failed for {job_key}: {e}")

            frame = capture_frame(image, size=config.capture_size, quality=config.capture_quality)
            started = await client.start_generation(session.video, session.style, key, frame, force=force)
            if 400 <= started.http < 500:
                message = started.body.message if started.body else None
                log.error(f"Generation request rejected for {job_key} ({started.http}): {message}")
                session.placeholders.clear(key)
                notify()
                return None

        for attempt in range(1, config.poll_attempts + 1):
            poll = await client.get_status(session.video, session.style, key)
            if url := poll.ready_url:
                log.info(f"READY {job_key} {url}")
                if force:
                    session.refresh(key, url)
                else:
                    session.mark_available(key, url)
                notify()
                return url

            if poll.is_error:
                message = poll.body.message if poll.body else None
                log.warning(f"ERROR {job_key}: {message}")
                session.placeholders.clear(key)
                notify()
                return None

            if attempt % 2 == 0:
                log.info(f"Waiting for {job_key} (http={poll.http}, status={poll.status}, attempt={attempt})")
            await asyncio.sleep(config.poll_interval)

        log.warning(f"TIMEOUT waiting for {job_key}")
        return None
    except httpx.HTTPError as e:
        log.warning(f"Request failed for {job_key}: {e}")
        session.placeholders.clear(key)
        notify()
        return None
    finally:
        session.in_flight.discard(key)
