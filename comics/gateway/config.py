import os
from enum import StrEnum, auto

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Stores(StrEnum):
    LOCAL = auto()
    S3 = auto()


class StoreConfig(BaseModel):
    path: str | None = None  # only used by the local store
    bucket: str | None = None
    region: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    endpoint_url: str | None = None  # S3-compatible providers (R2, MinIO)
    public_url: str | None = None  # CDN / custom domain in front of the bucket
    key_prefix: str = ""


class Settings(BaseSettings):
    cors_origins: list[str]
    log_dir: str | None = None

    styles_file: str

    store_type: Stores
    store_config: StoreConfig

    openai_api_key: str | None = None
    image_model: str = "gpt-image-1"
    image_size: str = "1024x1024"
    image_output_compression: int = 85
    synthesis_timeout_seconds: float = 180.0

    job_ttl_seconds: int = 5 * 60
    job_sweep_interval_seconds: int = 30

    max_frame_bytes: int = 10 * 1024 * 1024

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=[os.getenv("ENV_FILE", ""), ".env"],
        extra="ignore",
        env_nested_delimiter="__",
    )


def get_settings() -> Settings:  # ty: ignore[invalid-return-type]
    """This is only used for dependency references, see __init__.py:

    app.dependency_overrides[get_settings] = lambda: settings
    """
    ...
