"""
Beat tracking through the aubiotrack command-line tool.

aubiotrack prints one beat position (in seconds) per line. A missing
tool, a timeout or a failed run is reported as "no beats" so a batch
of tracks keeps going.
"""

import math
import os
import shutil
import subprocess
from typing import List, Optional

import structlog

logger = structlog.get_logger()

BEAT_TRACKER_BINARY = "aubiotrack"

# Homebrew install locations (Apple Silicon, Intel)
KNOWN_BEAT_TRACKER_PATHS = [
    "/opt/homebrew/bin/aubiotrack",
    "/usr/local/bin/aubiotrack",
]

DEFAULT_TIMEOUT_SECONDS = 120.0


def find_beat_tracker(configured_path: Optional[str] = None) -> Optional[str]:
    """
    Locate the aubiotrack binary.

    Order: configured path, PATH lookup, well-known install locations.
    """
    candidates = []
    if configured_path:
        candidates.append(configured_path)

    on_path = shutil.which(BEAT_TRACKER_BINARY)
    if on_path:
        candidates.append(on_path)

    candidates.extend(KNOWN_BEAT_TRACKER_PATHS)

    for candidate in candidates:
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate
    return None


def is_beat_tracker_available(configured_path: Optional[str] = None) -> bool:
    """Check whether BPM analysis can run at all."""
    return find_beat_tracker(configured_path) is not None


def parse_beat_output(output: str) -> List[float]:
    """
    Parse aubiotrack output into beat positions.

    Lines that are not positive finite numbers are dropped.
    """
    beats = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            value = float(line)
        except ValueError:
            continue
        if math.isfinite(value) and value > 0:
            beats.append(value)
    return beats


def track_beats(
    file_path: str,
    binary: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Optional[List[float]]:
    """
    Run aubiotrack on an audio file.

    Args:
        file_path: Audio file to analyze
        binary: aubiotrack path (looked up when not given)
        timeout: Seconds to wait for the process before giving up

    Returns:
        Beat positions in seconds, or None if the tracker could not run
    """
    binary = binary or find_beat_tracker()
    if binary is None:
        logger.warning("aubiotrack not found - install aubio to analyze BPM")
        return None

    try:
        result = subprocess.run(
            [binary, "-i", file_path],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning("Beat tracking timed out", file_path=file_path, timeout=timeout)
        return None
    except OSError as e:
        logger.error("Beat tracker could not be started", file_path=file_path, error=str(e))
        return None

    if result.returncode != 0:
        logger.warning(
            "Beat tracker failed",
            file_path=file_path,
            returncode=result.returncode,
            stderr=result.stderr.strip()[:200],
        )
        return None

    beats = parse_beat_output(result.stdout)
    logger.debug("Beats tracked", file_path=file_path, beats_count=len(beats))
    return beats
