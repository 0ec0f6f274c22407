from pathlib import Path

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from comics.gateway.config import Stores
from comics.gateway.deps import SettingsDep
from comics.gateway.storage import NO_CACHE

router = APIRouter(prefix="/v1/files", tags=["Files"])


@router.get("/{key:path}")
async def get_file(key: str, settings: SettingsDep) -> FileResponse:
    """Serve stored panels (local store only, unused with S3)."""
    if settings.store_type != Stores.LOCAL or not settings.store_config.path:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Local storage not configured")
    root = Path(settings.store_config.path)
    file_path = root / key

    if not file_path.resolve().is_relative_to(root.resolve()):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Panel not found")

    if not file_path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Panel not found")

    return FileResponse(file_path, media_type="image/jpeg", headers={"Cache-Control": NO_CACHE})
