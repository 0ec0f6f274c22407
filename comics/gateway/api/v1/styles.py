from fastapi import APIRouter
from fastapi.responses import JSONResponse

from comics.gateway.deps import StyleCatalogDep

router = APIRouter(prefix="/v1/styles", tags=["Styles"])


@router.get("")
async def list_styles(styles: StyleCatalogDep) -> JSONResponse:
    """The full style catalog. Style names missing from it are rejected everywhere."""
    return JSONResponse(content=styles.as_dict(), headers={"Cache-Control": "no-store"})
