"""Filesystem facts about audio files."""

import os

from sonicat.domain.dtos import FileInfo


def mtime_ms(stat_result: os.stat_result) -> int:
    """Modification time in epoch milliseconds (the unit stored on tracks)."""
    return int(stat_result.st_mtime * 1000)


def read_file_info(file_path: str) -> FileInfo:
    """Stat a file.

    Raises:
        OSError: File vanished or is unreadable
    """
    stat_result = os.stat(file_path)
    return FileInfo(
        path=file_path,
        size=stat_result.st_size,
        last_modified=mtime_ms(stat_result),
        extension=os.path.splitext(file_path)[1].lstrip(".").lower(),
    )
