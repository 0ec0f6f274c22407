"""Panel status protocol, decoupled from transport.

Maps the job registry and the artifact store onto the externally visible
states: missing -> generating -> ready | error. Ready and error stick while the
registry keeps the record; after that the store answers.
"""

from loguru import logger

from comics import buckets
from comics.contracts import PanelIdentity, StatusResponse
from comics.gateway.exceptions import InvalidPanelError
from comics.gateway.jobs import JobRegistry, JobState
from comics.gateway.storage import ArtifactStore, object_key
from comics.gateway.styles import StyleCatalog
from comics.gateway.synthesis import GenerationPipeline


def resolve_identity(video: str, style: str, tc: str, styles: StyleCatalog) -> PanelIdentity:
    """Validate raw path parameters. Raises InvalidPanelError before anything else is touched."""
    bucket = buckets.parse(tc)
    if not video or video in (".", "..") or "/" in video or "\\" in video or not style or bucket is None:
        raise InvalidPanelError("Invalid parameters")
    if style not in styles:
        raise InvalidPanelError(f"Unknown style: {style}")
    return PanelIdentity(video=video, style=style, bucket=bucket)


async def panel_status(
    identity: PanelIdentity,
    registry: JobRegistry,
    store: ArtifactStore,
    key_prefix: str = "",
) -> StatusResponse:
    job = registry.get(identity)
    if job is not None:
        match job.state:
            case JobState.GENERATING:
                return StatusResponse.generating()
            case JobState.ERROR:
                return StatusResponse.error(job.error or "Generation failed")
            case JobState.READY if job.url:
                return StatusResponse.ready(job.url)

    key = object_key(identity, key_prefix)
    if await store.exists(key):
        return StatusResponse.ready(store.url_for(key))
    return StatusResponse.missing()


async def request_panel(
    identity: PanelIdentity,
    frame: bytes,
    content_type: str,
    force: bool,
    registry: JobRegistry,
    store: ArtifactStore,
    pipeline: GenerationPipeline,
    key_prefix: str = "",
) -> StatusResponse:
    """Start generation unless the panel exists (and ``force`` is unset) or is already generating."""
    log = logger.bind(video=identity.video, style=identity.style, bucket=identity.bucket)
    key = object_key(identity, key_prefix)

    exists = await store.exists(key)
    if exists and not force:
        return StatusResponse.ready(store.url_for(key))
    if exists:
        log.info(f"Overwrite requested for {identity}")

    generation = registry.begin_generating(identity)
    if generation is None:
        log.debug(f"Already generating {identity}")
        return StatusResponse.generating()

    if force:
        log.info(f"Forcing regeneration for {identity}")
    pipeline.launch(identity, frame, content_type, generation)
    return StatusResponse.generating()


async def delete_panel(
    identity: PanelIdentity,
    registry: JobRegistry,
    store: ArtifactStore,
    pipeline: GenerationPipeline,
    key_prefix: str = "",
) -> StatusResponse:
    """Delete the artifact and forget the job, so the next query re-checks the store.

    A generation still running for the panel is cancelled first; its outcome is
    never recorded.
    """
    log = logger.bind(video=identity.video, style=identity.style, bucket=identity.bucket)
    key = object_key(identity, key_prefix)
    registry.discard(identity)
    if await pipeline.cancel(identity):
        log.info(f"Cancelled running generation for {identity}")
    await store.delete(key)
    log.info(f"Deleted {key}")
    return StatusResponse.deleted(key)
