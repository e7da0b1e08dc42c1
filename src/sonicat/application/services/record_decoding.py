"""Decoding stored values into catalog records.

Hey future me - a stored value that fails validation is NOT an exception here! It comes back
as a Malformed result and the caller asks malformed_policy_for() what to do with it. That
keeps "what counts as corrupt" and "what we do about corruption" in two small, testable places.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from sonicat.domain.entities import CatalogRecord
from sonicat.domain.value_objects import Collection

RecordT = TypeVar("RecordT", bound=CatalogRecord)


@dataclass(frozen=True)
class Decoded(Generic[RecordT]):
    """A stored value that validated."""

    record: RecordT


@dataclass(frozen=True)
class Malformed:
    """A stored value that failed validation."""

    raw: Any
    error: str


class MalformedPolicy(str, Enum):
    """What the sweep does with a record that fails validation."""

    DELETE = "delete"
    KEEP = "keep"


# Playlists are user-authored and cannot be rebuilt by a rescan, so they survive corruption.
_KEEP_MALFORMED = frozenset({Collection.PLAYLISTS, Collection.USERS})


def decode_record(model: type[RecordT], value: Any) -> "Decoded[RecordT] | Malformed":
    """Validate a stored value against a record model.

    Args:
        model: Record class to validate against
        value: Raw value read from the store (None counts as malformed)

    Returns:
        Decoded with the record, or Malformed with the validation error text
    """
    if value is None:
        return Malformed(raw=None, error="missing value")
    try:
        return Decoded(record=model.from_record(value))
    except ValidationError as e:
        return Malformed(raw=value, error=f"{e.error_count()} validation error(s): {e.errors()[0]['msg']}")


def malformed_policy_for(collection: Collection) -> MalformedPolicy:
    """Decide what happens to a malformed record of a collection."""
    if collection in _KEEP_MALFORMED:
        return MalformedPolicy.KEEP
    return MalformedPolicy.DELETE
