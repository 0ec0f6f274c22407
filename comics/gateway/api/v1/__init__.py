from comics.gateway.api.v1.files import router as files_router
from comics.gateway.api.v1.panels import router as panels_router
from comics.gateway.api.v1.styles import router as styles_router

__all__ = ["routers"]
routers = [panels_router, styles_router, files_router]
