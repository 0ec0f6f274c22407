from __future__ import annotations

from pathlib import Path
from typing import Annotated

from fastapi import Depends, Request

from comics.contracts import PanelIdentity
from comics.gateway.config import Settings, Stores, get_settings
from comics.gateway.jobs import JobRegistry
from comics.gateway.panels import resolve_identity
from comics.gateway.storage import ArtifactStore, LocalArtifactStore, S3ArtifactStore
from comics.gateway.styles import StyleCatalog
from comics.gateway.synthesis import GenerationPipeline

SettingsDep = Annotated[Settings, Depends(get_settings)]


def create_store(settings: Settings) -> ArtifactStore:
    config = settings.store_config
    match settings.store_type:
        case Stores.LOCAL:
            if not config.path:
                raise ValueError("store_config.path is required for the local store")
            return LocalArtifactStore(Path(config.path), public_url=config.public_url or "/v1/files")
        case Stores.S3:
            if not config.bucket:
                raise ValueError("store_config.bucket is required for the s3 store")
            return S3ArtifactStore(
                bucket_name=config.bucket,
                region=config.region,
                access_key_id=config.access_key_id,
                secret_access_key=config.secret_access_key,
                endpoint_url=config.endpoint_url,
                public_url=config.public_url,
            )
        case _:
            raise ValueError(f"Invalid store type {settings.store_type}")


async def get_registry(request: Request) -> JobRegistry:
    return request.app.state.job_registry


async def get_store(request: Request) -> ArtifactStore:
    return request.app.state.artifact_store


async def get_pipeline(request: Request) -> GenerationPipeline:
    return request.app.state.pipeline


async def get_styles(request: Request) -> StyleCatalog:
    return request.app.state.styles


JobRegistryDep = Annotated[JobRegistry, Depends(get_registry)]
ArtifactStoreDep = Annotated[ArtifactStore, Depends(get_store)]
PipelineDep = Annotated[GenerationPipeline, Depends(get_pipeline)]
StyleCatalogDep = Annotated[StyleCatalog, Depends(get_styles)]


async def get_identity(video: str, style: str, tc: str, styles: StyleCatalogDep) -> PanelIdentity:
    return resolve_identity(video, style, tc, styles)


CurrentPanel = Annotated[PanelIdentity, Depends(get_identity)]
