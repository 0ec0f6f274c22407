from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from comics.gateway.api.v1 import routers as v1_routers
from comics.gateway.config import Settings, get_settings
from comics.gateway.deps import create_store
from comics.gateway.exceptions import APIError
from comics.gateway.jobs import JobRegistry
from comics.gateway.logging_config import (
    RequestContextMiddleware,
    api_error_handler,
    configure_logging,
    unhandled_exception_handler,
)
from comics.gateway.styles import StyleCatalog
from comics.gateway.synthesis import GenerationPipeline, ImageSynthesizer, OpenAIImageSynthesizer


def _create_synthesizer(settings: Settings) -> ImageSynthesizer:
    if not settings.openai_api_key:
        raise ValueError("openai_api_key is required for image synthesis")
    return OpenAIImageSynthesizer(
        api_key=settings.openai_api_key,
        model=settings.image_model,
        size=settings.image_size,
        output_compression=settings.image_output_compression,
        timeout_seconds=settings.synthesis_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.dependency_overrides[get_settings]()
    assert isinstance(settings, Settings)

    app.state.styles = StyleCatalog.from_file(settings.styles_file)
    app.state.artifact_store = create_store(settings)
    app.state.job_registry = JobRegistry(
        ttl_seconds=settings.job_ttl_seconds,
        sweep_interval_seconds=settings.job_sweep_interval_seconds,
    )
    synthesizer = app.state.synthesizer or _create_synthesizer(settings)
    app.state.pipeline = GenerationPipeline(
        registry=app.state.job_registry,
        store=app.state.artifact_store,
        synthesizer=synthesizer,
        styles=app.state.styles,
        key_prefix=settings.store_config.key_prefix,
    )

    await app.state.job_registry.start()
    logger.info(f"Comics gateway ready ({settings.store_type} store, {len(app.state.styles)} styles)")

    yield

    await app.state.pipeline.stop()
    await app.state.job_registry.stop()


def create_app(
    settings: Settings | None = None,
    synthesizer: ImageSynthesizer | None = None,
) -> FastAPI:
    if settings is None:
        settings = Settings()  # type: ignore

    configure_logging(Path(settings.log_dir) if settings.log_dir else None)

    app = FastAPI(
        title="Comics Gateway",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.dependency_overrides[get_settings] = lambda: settings
    app.state.synthesizer = synthesizer

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    for r in v1_routers:
        app.include_router(r)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
