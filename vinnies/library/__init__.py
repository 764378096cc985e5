"""Music library module: track records, folder scanning and persistence"""

from vinnies.library.models import Track
from vinnies.library.scanner import SUPPORTED_EXTENSIONS, find_audio_files, read_track, scan_library
from vinnies.library.store import LibraryStoreError, load_tracks, save_tracks

__all__ = [
    "Track",
    "SUPPORTED_EXTENSIONS",
    "find_audio_files",
    "read_track",
    "scan_library",
    "LibraryStoreError",
    "load_tracks",
    "save_tracks",
]
