"""Application lifecycle management for startup and shutdown tasks."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from sqlalchemy.engine import make_url

from sonicat.application.services.auto_share_service import AutoShareService
from sonicat.application.services.library_scanner_service import LibraryScannerService
from sonicat.config import Settings
from sonicat.domain.exceptions import ConfigurationException
from sonicat.infrastructure.metadata import MutagenMetadataExtractor
from sonicat.infrastructure.observability import configure_logging
from sonicat.infrastructure.persistence import Database, SqlCatalogStore

logger = logging.getLogger(__name__)


# Hey future me, SQLite needs its parent directory to exist (and be writable for -wal/-shm files)
# BEFORE the engine connects.
def _ensure_sqlite_directory(settings: Settings) -> None:
    url = make_url(settings.database.url)
    if not url.drivername.startswith("sqlite") or not url.database or url.database == ":memory:":
        return
    parent = Path(url.database).parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationException(
            f"Unable to create SQLite database directory '{parent}': {exc}"
        ) from exc


# Listen future me, everything before `yield` runs at STARTUP, everything after at SHUTDOWN.
# Tests can pre-seed app.state.store / app.state.extractor (see create_app); then no database
# is opened at all.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles:
    - Logging configuration
    - Database and catalog store initialization
    - Scanner and auto-share service wiring
    - Optional scan on start
    - Resource cleanup
    """
    settings: Settings = app.state.settings

    configure_logging(
        log_level=settings.observability.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    db: Database | None = None
    extractor: MutagenMetadataExtractor | None = None
    scanner: LibraryScannerService | None = None
    try:
        if not hasattr(app.state, "store"):
            _ensure_sqlite_directory(settings)
            db = Database(settings)
            await db.create_tables()
            app.state.db = db
            app.state.store = SqlCatalogStore(db)
            logger.info("Database initialized: %s", settings.database.url)

        if not hasattr(app.state, "extractor"):
            extractor = MutagenMetadataExtractor(genre_separators=settings.library.genre_separators)
            app.state.extractor = extractor

        scanner = LibraryScannerService(app.state.store, app.state.extractor, settings)
        app.state.scanner = scanner
        app.state.auto_shares = AutoShareService(app.state.store)

        if settings.library.scan_on_start:
            scanner.start_background_scan()
            logger.info("Initial library scan scheduled")

        yield

    finally:
        logger.info("Shutting down application")
        if scanner is not None:
            # The scan task must be finished BEFORE the extractor pool and db go away
            await scanner.shutdown(timeout=settings.observability.shutdown_timeout)
        if extractor is not None:
            extractor.close()
        if db is not None:
            await db.close()
            logger.info("Database connection closed")
