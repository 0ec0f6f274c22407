"""HTTP client for the panel endpoints."""

from dataclasses import dataclass
from urllib.parse import quote

import httpx
from loguru import logger

from comics.contracts import FORCE_OVERWRITE_HEADER, PanelStatus, StatusResponse


class PanelClientError(Exception):
    """An explicit action (e.g. delete) was refused by the gateway."""

    def __init__(self, message: str, http_status: int | None = None):
        super().__init__(message)
        self.http_status = http_status


@dataclass(frozen=True)
class PanelReply:
    http: int
    body: StatusResponse | None

    @property
    def status(self) -> PanelStatus | None:
        return self.body.status if self.body else None

    @property
    def ready_url(self) -> str | None:
        """URL when the panel is ready, None otherwise."""
        if self.http == 200 and self.body and self.body.status == PanelStatus.READY and self.body.url:
            return self.body.url
        return None

    @property
    def is_missing(self) -> bool:
        return self.http == 404 or self.status == PanelStatus.MISSING

    @property
    def is_error(self) -> bool:
        return self.http >= 500 or self.status == PanelStatus.ERROR


def panel_path(video: str, style: str, key: str) -> str:
    return f"/v1/comics/{quote(video, safe='')}/{quote(style, safe='')}/{quote(key, safe='')}"


def _parse(response: httpx.Response) -> PanelReply:
    try:
        body = StatusResponse.model_validate(response.json())
    except ValueError:
        body = None
    return PanelReply(http=response.status_code, body=body)


class PanelsClient:
    def __init__(self, base_url: str, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "PanelsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_status(self, video: str, style: str, key: str) -> PanelReply:
        response = await self._client.get(panel_path(video, style, key), headers={"Cache-Control": "no-store"})
        return _parse(response)

    async def start_generation(
        self,
        video: str,
        style: str,
        key: str,
        frame: bytes,
        content_type: str = "image/jpeg",
        force: bool = False,
    ) -> PanelReply:
        headers = {"Content-Type": content_type}
        if force:
            headers[FORCE_OVERWRITE_HEADER] = "1"
        logger.info(f"POST start generation {video}/{style}/{key} ({len(frame)} bytes, force={force})")
        response = await self._client.post(panel_path(video, style, key), content=frame, headers=headers)
        return _parse(response)

    async def delete_panel(self, video: str, style: str, key: str) -> StatusResponse:
        response = await self._client.delete(panel_path(video, style, key))
        reply = _parse(response)
        if response.is_error or reply.body is None:
            message = reply.body.message if reply.body and reply.body.message else None
            raise PanelClientError(message or f"Delete failed ({response.status_code})", response.status_code)
        return reply.body

    async def get_styles(self) -> dict[str, dict]:
        response = await self._client.get("/v1/styles")
        response.raise_for_status()
        return response.json()
