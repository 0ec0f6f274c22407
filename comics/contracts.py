"""Contracts shared by the gateway and the playback client."""

from enum import StrEnum, auto
from typing import Final

from pydantic import BaseModel, ConfigDict

JOB_KEY: Final[str] = "{video}:{style}:{bucket}"
OBJECT_PATH: Final[str] = "{video}/{style}/{bucket}.jpg"

FORCE_OVERWRITE_HEADER: Final[str] = "X-Force-Overwrite"

ACCEPTED_FRAME_TYPES: Final[frozenset[str]] = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "application/octet-stream"}
)


class PanelStatus(StrEnum):
    MISSING = auto()
    GENERATING = auto()
    READY = auto()
    ERROR = auto()
    DELETED = auto()


class PanelIdentity(BaseModel):
    """One panel: a video, a style from the catalog and a canonical bucket key."""

    video: str
    style: str
    bucket: str

    model_config = ConfigDict(frozen=True)

    @property
    def job_key(self) -> str:
        return JOB_KEY.format(video=self.video, style=self.style, bucket=self.bucket)

    @property
    def object_path(self) -> str:
        return OBJECT_PATH.format(video=self.video, style=self.style, bucket=self.bucket)

    def __str__(self) -> str:
        return self.job_key


class StatusResponse(BaseModel):
    """Wire shape for every panel endpoint. Unset fields are left out of the JSON."""

    status: PanelStatus
    url: str | None = None
    message: str | None = None
    key: str | None = None

    @classmethod
    def ready(cls, url: str) -> "StatusResponse":
        return cls(status=PanelStatus.READY, url=url)

    @classmethod
    def generating(cls) -> "StatusResponse":
        return cls(status=PanelStatus.GENERATING)

    @classmethod
    def missing(cls) -> "StatusResponse":
        return cls(status=PanelStatus.MISSING)

    @classmethod
    def error(cls, message: str) -> "StatusResponse":
        return cls(status=PanelStatus.ERROR, message=message)

    @classmethod
    def deleted(cls, key: str) -> "StatusResponse":
        return cls(status=PanelStatus.DELETED, key=key)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
