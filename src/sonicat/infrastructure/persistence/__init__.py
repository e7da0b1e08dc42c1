"""Persistence layer: database, catalog stores and batch helpers."""

from sonicat.infrastructure.persistence.batch_utils import (
    DEFAULT_BATCH_SIZE,
    chunked,
    clear_prefix,
    delete_in_batches,
)
from sonicat.infrastructure.persistence.catalog_store import (
    SqlAtomicBatch,
    SqlCatalogStore,
)
from sonicat.infrastructure.persistence.database import Database
from sonicat.infrastructure.persistence.memory_store import (
    MemoryAtomicBatch,
    MemoryCatalogStore,
)

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "Database",
    "MemoryAtomicBatch",
    "MemoryCatalogStore",
    "SqlAtomicBatch",
    "SqlCatalogStore",
    "chunked",
    "clear_prefix",
    "delete_in_batches",
]
