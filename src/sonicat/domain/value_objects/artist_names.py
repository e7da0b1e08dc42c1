"""Artist name handling for matching and deduplication.

Hey future me - tag data is messy! One file says "Foo; Bar", another says "foo",
a third has an artist ARRAY on top of the artist string. Everything funnels
through these helpers so the resolver only ever sees clean, deduplicated names.

Examples:
    >>> split_artist_names("Foo; Bar/Baz", separators=[";", "/"])
    ['Foo', 'Bar', 'Baz']
    >>> normalize_name("  The Foo ")
    'the foo'
    >>> format_display_artist(["A", "B", "C"])
    'A, B & C'
"""

import re
from collections.abc import Iterable, Sequence

UNKNOWN_ARTIST = "Unknown Artist"


def normalize_name(name: str) -> str:
    """Normalize a name for case-insensitive equality (lowercase, trimmed)."""
    return name.strip().lower()


def separators_to_pattern(separators: Sequence[str]) -> re.Pattern[str] | None:
    """Compile a separator list into a split pattern.

    A run of separators counts as one split, so "Foo;/Bar" gives two names.

    Args:
        separators: Separator characters (multi-char entries are split into chars)

    Returns:
        Compiled pattern, or None when there are no separators
    """
    chars = sorted({char for sep in separators for char in sep})
    if not chars:
        return None
    return re.compile("[" + "".join(re.escape(char) for char in chars) + "]+")


def split_artist_names(
    artist: str | None,
    artists: Iterable[str] = (),
    separators: Sequence[str] = (";", "/"),
) -> list[str]:
    """Split, trim and deduplicate artist names from tag data.

    The placeholder "Unknown Artist" artist string is ignored. Deduplication is
    case-insensitive and keeps the first-seen spelling and order.

    Args:
        artist: Artist tag string (may hold several names)
        artists: Artist array tag (each entry may hold several names too)
        separators: Characters that split multi-artist strings

    Returns:
        Unique names in first-seen order (possibly empty)
    """
    sources: list[str] = []
    if artist and artist.strip() and artist.strip() != UNKNOWN_ARTIST:
        sources.append(artist)
    sources.extend(name for name in artists if name)

    pattern = separators_to_pattern(separators)
    names: list[str] = []
    seen: set[str] = set()
    for source in sources:
        parts = pattern.split(source) if pattern else [source]
        for part in parts:
            name = part.strip()
            key = normalize_name(name)
            if not name or key in seen:
                continue
            seen.add(key)
            names.append(name)
    return names


def format_display_artist(names: Sequence[str]) -> str:
    """Render names as "A", "A & B" or "A, B & C"."""
    if not names:
        return UNKNOWN_ARTIST
    if len(names) == 1:
        return names[0]
    return ", ".join(names[:-1]) + " & " + names[-1]


def names_overlap(left: Iterable[str], right: Iterable[str]) -> bool:
    """Check whether two name lists share at least one name (case-insensitive)."""
    normalized = {normalize_name(name) for name in left}
    return any(normalize_name(name) in normalized for name in right)
