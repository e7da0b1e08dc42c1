"""SQLAlchemy ORM models for Sonicat."""

import json
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from sonicat.domain.value_objects import CatalogKey


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Hey future me, this ONE table holds the whole catalog! It's a key-value table, not a
# relational schema: (collection, key) is the primary key and value is the validated record
# as JSON. The key column holds the remaining key parts JSON-encoded, e.g. for
# ("userData", "u1", "track", "t1") collection="userData" and key='["u1", "track", "t1"]'.
# No foreign keys: the consistency sweep owns referential integrity.
class CatalogEntryModel(Base):
    """One key/value pair of the catalog store."""

    __tablename__ = "catalog_entries"

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<CatalogEntryModel {self.collection} {self.key}>"


def encode_key(key: CatalogKey) -> tuple[str, str]:
    """Split a catalog key into (collection, encoded remainder)."""
    if not key:
        raise ValueError("Catalog key must not be empty")
    # ASCII escapes keep surrogate-escaped file names encodable for the database driver
    return key[0], json.dumps(list(key[1:]), ensure_ascii=True)


def decode_key(collection: str, encoded: str) -> CatalogKey:
    """Inverse of encode_key()."""
    return (collection, *json.loads(encoded))
