"""API routers."""

from sonicat.api.routers.catalog import router as catalog_router
from sonicat.api.routers.library import router as library_router

__all__ = ["catalog_router", "library_router"]
