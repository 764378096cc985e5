"""
Music folder scanner.

Walks a folder for audio files and reads title/artist tags with
mutagen. A file whose tags cannot be read still becomes a Track,
titled after its file name.
"""

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional

import mutagen
import structlog

from vinnies.library.models import Track

logger = structlog.get_logger()

SUPPORTED_EXTENSIONS = ("mp3", "m4a", "flac", "wav", "aiff", "aac", "ogg")

# Directories that are opaque packages (app bundles, library databases)
PACKAGE_SUFFIXES = (
    ".app",
    ".bundle",
    ".framework",
    ".musiclibrary",
    ".photoslibrary",
    ".logicx",
    ".band",
)


@dataclass(frozen=True)
class ScanProgress:
    """One processed file in a scan."""
    scanned: int
    total: int
    track: Track


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def _is_package(name: str) -> bool:
    return name.lower().endswith(PACKAGE_SUFFIXES)


def find_audio_files(
    directory: Path,
    extensions: Optional[List[str]] = None,
) -> List[Path]:
    """
    Find all audio files under a directory, recursively.

    Hidden files and folders and package bundles are skipped.

    Raises:
        ValueError: If the directory doesn't exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise ValueError(f"Directory does not exist: {directory}")

    wanted = {ext.lower().lstrip(".") for ext in (extensions or SUPPORTED_EXTENSIONS)}
    files: List[Path] = []

    for root, dirnames, filenames in os.walk(directory):
        dirnames[:] = [d for d in dirnames if not _is_hidden(d) and not _is_package(d)]
        for filename in filenames:
            if _is_hidden(filename):
                continue
            if Path(filename).suffix.lower().lstrip(".") in wanted:
                files.append(Path(root) / filename)

    return sorted(files)


def _first_tag(tags, name: str) -> Optional[str]:
    values = tags.get(name) if tags is not None else None
    if not values:
        return None
    value = str(values[0]).strip()
    return value or None


def read_track(file_path: Path) -> Track:
    """
    Build a Track for an audio file from its embedded tags.

    Falls back to the file name as title when tags are missing
    or unreadable.
    """
    file_path = Path(file_path)
    title = None
    artist = None

    try:
        audio = mutagen.File(file_path, easy=True)
        if audio is not None:
            title = _first_tag(audio.tags, "title")
            artist = _first_tag(audio.tags, "artist")
    except Exception as e:
        logger.warning("Could not read tags", path=str(file_path), error=str(e))

    return Track(
        path=str(file_path),
        title=title or file_path.stem,
        artist=artist,
    )


def iter_scan(
    directory: Path,
    extensions: Optional[List[str]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Iterator[ScanProgress]:
    """
    Scan a folder, yielding progress after each file.

    Stops before the next file once cancel_event is set.
    """
    files = find_audio_files(directory, extensions)
    total = len(files)
    logger.info("Starting library scan", directory=str(directory), file_count=total)

    for index, file_path in enumerate(files):
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Library scan cancelled", scanned=index, total=total)
            return
        yield ScanProgress(scanned=index + 1, total=total, track=read_track(file_path))

    logger.info("Library scan complete", file_count=total)


def scan_library(
    directory: Path,
    on_progress: Optional[Callable[[int, int, Track], None]] = None,
    extensions: Optional[List[str]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[Track]:
    """
    Scan a folder for audio files.

    Args:
        directory: Music folder
        on_progress: Called as on_progress(scanned, total, track)
        extensions: File extensions to accept (default SUPPORTED_EXTENSIONS)
        cancel_event: Set to stop between files

    Returns:
        Tracks with path, title and artist filled in
    """
    tracks = []
    for progress in iter_scan(directory, extensions, cancel_event):
        tracks.append(progress.track)
        if on_progress:
            on_progress(progress.scanned, progress.total, progress.track)
    return tracks
