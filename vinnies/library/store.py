"""
JSON persistence for the track list.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Iterable, List

import structlog

from vinnies.library.models import Track

logger = structlog.get_logger()


class LibraryStoreError(Exception):
    """The library file could not be read or written."""


def save_tracks(tracks: Iterable[Track], path: Path) -> None:
    """
    Write tracks to a JSON file.

    The file is replaced atomically so a failed write never leaves
    a truncated library behind.

    Raises:
        LibraryStoreError: If the file cannot be written
    """
    path = Path(path)
    records = [track.to_dict() for track in tracks]

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise LibraryStoreError(f"Could not save library to {path}: {e}") from e

    logger.info("Library saved", path=str(path), track_count=len(records))


def load_tracks(path: Path) -> List[Track]:
    """
    Read tracks from a JSON file.

    Raises:
        LibraryStoreError: If the file is missing, unreadable or malformed
    """
    path = Path(path)

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise LibraryStoreError(f"Library file not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise LibraryStoreError(f"Could not read library file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise LibraryStoreError(f"Corrupt library file {path}: {e}") from e

    if not isinstance(data, list):
        raise LibraryStoreError(f"Library file {path} must contain a JSON array")

    try:
        tracks = [Track.from_dict(record) for record in data]
    except ValueError as e:
        raise LibraryStoreError(f"Invalid track in {path}: {e}") from e

    logger.info("Library loaded", path=str(path), track_count=len(tracks))
    return tracks
