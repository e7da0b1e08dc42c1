# Hey future me - discovery is a GENERATOR! Paths stream out directory by directory (os.walk),
# control goes back to the event loop after every directory, and the cancel token is checked
# after every yielded file. Symlinks are NOT followed (directories or files), so a link back to
# an ancestor can't loop the walk and a linked file is never indexed twice.
"""Audio file discovery under the configured music roots."""

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Iterable, Iterator
from pathlib import Path

from sonicat.application.cancellation import CancellationToken
from sonicat.config.settings import DEFAULT_AUDIO_EXTENSIONS

logger = logging.getLogger(__name__)


def _walk_root(root: Path, extensions: frozenset[str]) -> Iterator[list[str]]:
    """Yield the matching absolute file paths of each directory under root."""

    def _on_error(error: OSError) -> None:
        # Unreadable subdirectory: log it and keep walking the rest of the tree
        logger.warning(f"Skipping unreadable directory {error.filename}: {error.strerror}")

    if not root.is_dir():
        logger.error(f"Music folder does not exist or is not a directory: {root}")
        return

    for dirpath, _dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=False):
        matches = [
            os.path.abspath(os.path.join(dirpath, name))
            for name in filenames
            if os.path.splitext(name)[1].lower() in extensions
        ]
        yield [path for path in matches if not os.path.islink(path)]


def _normalize_extensions(extensions: Iterable[str] | None) -> frozenset[str]:
    values = extensions if extensions is not None else DEFAULT_AUDIO_EXTENSIONS
    return frozenset(
        ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in values
    )


async def scan_audio_files(
    directories: Iterable[str | Path],
    extensions: Iterable[str] | None = None,
    cancel_token: CancellationToken | None = None,
) -> AsyncIterator[str]:
    """Yield absolute paths of audio files under the given roots.

    A root that is missing or unreadable is logged and skipped; the other
    roots are still walked.

    Args:
        directories: Root directories to walk
        extensions: Accepted extensions (case-insensitive, default audio set)
        cancel_token: Checked after every yielded file

    Yields:
        Absolute file paths in filesystem walk order

    Raises:
        ScanCancelledException: When the token is cancelled
    """
    accepted = _normalize_extensions(extensions)
    for directory in directories:
        root = Path(directory)
        logger.info(f"Scanning directory: {root}")
        for batch in _walk_root(root, accepted):
            for file_path in batch:
                yield file_path
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
            await asyncio.sleep(0)
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()


async def count_audio_files(
    directories: Iterable[str | Path],
    extensions: Iterable[str] | None = None,
) -> int:
    """Count the files scan_audio_files would yield (for progress reporting)."""
    accepted = _normalize_extensions(extensions)
    count = 0
    for directory in directories:
        for batch in _walk_root(Path(directory), accepted):
            count += len(batch)
            await asyncio.sleep(0)
    return count
