"""FastAPI application factory."""

from fastapi import FastAPI

from sonicat import __version__
from sonicat.api.exception_handlers import register_exception_handlers
from sonicat.api.routers import catalog_router, library_router
from sonicat.config import Settings, get_settings
from sonicat.domain.ports import ICatalogStore, IMetadataExtractor
from sonicat.infrastructure.lifecycle import lifespan


def create_app(
    settings: Settings | None = None,
    store: ICatalogStore | None = None,
    extractor: IMetadataExtractor | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings to use (default: get_settings())
        store: Catalog store to use instead of opening the configured database
        extractor: Metadata extractor to use instead of mutagen

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    if store is not None:
        app.state.store = store
    if extractor is not None:
        app.state.extractor = extractor

    register_exception_handlers(app)
    app.include_router(library_router)
    app.include_router(catalog_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
