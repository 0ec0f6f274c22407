from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from comics.contracts import ACCEPTED_FRAME_TYPES, FORCE_OVERWRITE_HEADER, PanelStatus, StatusResponse
from comics.gateway.deps import ArtifactStoreDep, CurrentPanel, JobRegistryDep, PipelineDep, SettingsDep
from comics.gateway.exceptions import FrameTooLargeError, InvalidPanelError
from comics.gateway.panels import delete_panel, panel_status, request_panel

router = APIRouter(prefix="/v1/comics", tags=["Panels"])

_HTTP_STATUS = {
    PanelStatus.READY: 200,
    PanelStatus.GENERATING: 202,
    PanelStatus.MISSING: 404,
    PanelStatus.ERROR: 500,
    PanelStatus.DELETED: 200,
}


def _respond(body: StatusResponse, retry_hint: bool = False) -> JSONResponse:
    headers = {"Retry-After": "1"} if retry_hint and body.status == PanelStatus.GENERATING else None
    return JSONResponse(status_code=_HTTP_STATUS[body.status], content=body.to_json(), headers=headers)


@router.get("/{video}/{style}/{tc}")
async def get_panel(
    identity: CurrentPanel,
    registry: JobRegistryDep,
    store: ArtifactStoreDep,
    settings: SettingsDep,
) -> JSONResponse:
    """Panel status: 200 ready, 202 generating, 404 missing, 500 error."""
    body = await panel_status(identity, registry, store, settings.store_config.key_prefix)
    return _respond(body, retry_hint=True)


@router.post("/{video}/{style}/{tc}")
async def generate_panel(
    identity: CurrentPanel,
    request: Request,
    registry: JobRegistryDep,
    store: ArtifactStoreDep,
    pipeline: PipelineDep,
    settings: SettingsDep,
) -> JSONResponse:
    """Start generating a panel from the raw frame in the request body."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type not in ACCEPTED_FRAME_TYPES:
        raise InvalidPanelError(f"Unsupported content type: {content_type or 'none'}")

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > settings.max_frame_bytes:
        raise FrameTooLargeError(int(declared), settings.max_frame_bytes)
    frame = await request.body()
    if len(frame) > settings.max_frame_bytes:
        raise FrameTooLargeError(len(frame), settings.max_frame_bytes)
    if not frame:
        raise InvalidPanelError("Missing image body")

    force = request.headers.get(FORCE_OVERWRITE_HEADER) == "1"
    body = await request_panel(
        identity,
        frame,
        content_type,
        force,
        registry,
        store,
        pipeline,
        settings.store_config.key_prefix,
    )
    return _respond(body)


@router.delete("/{video}/{style}/{tc}")
async def remove_panel(
    identity: CurrentPanel,
    registry: JobRegistryDep,
    store: ArtifactStoreDep,
    pipeline: PipelineDep,
    settings: SettingsDep,
) -> JSONResponse:
    """Delete a panel so it can be regenerated. Idempotent."""
    body = await delete_panel(identity, registry, store, pipeline, settings.store_config.key_prefix)
    return _respond(body)
