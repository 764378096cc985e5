"""
Track analysis orchestrating BPM, key and energy steps.

Tracks are processed one at a time in input order. Each completed
track is reported as an AnalysisProgress event, and a cancel event is
checked between tracks so a long pass can be stopped cleanly.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterator, List, Optional, Protocol, Sequence, Tuple

import structlog

from vinnies.analysis.beat_tracker import track_beats
from vinnies.analysis.bpm import estimate_bpm_from_beats
from vinnies.library.models import Track

logger = structlog.get_logger()

BeatSource = Callable[[str], Optional[List[float]]]
ProgressCallback = Callable[[int, int, Track], None]


class KeyDetector(Protocol):
    """Detects (pitch class, mode) for an audio file."""

    def detect(self, file_path: str) -> Optional[Tuple[int, int]]:
        ...


class EnergyEstimator(Protocol):
    """Estimates a 0-1 energy value for an audio file."""

    def estimate(self, file_path: str) -> Optional[float]:
        ...


class NullKeyDetector:
    """Key detection is not available yet; always unknown."""

    def detect(self, file_path: str) -> Optional[Tuple[int, int]]:
        return None


class NullEnergyEstimator:
    """Energy estimation is not available yet; always unknown."""

    def estimate(self, file_path: str) -> Optional[float]:
        return None


@dataclass(frozen=True)
class AnalysisProgress:
    """One completed track in an analysis pass."""
    completed: int
    total: int
    track: Track


def analyze_track(
    track: Track,
    beat_source: BeatSource = track_beats,
    key_detector: Optional[KeyDetector] = None,
    energy_estimator: Optional[EnergyEstimator] = None,
) -> Track:
    """
    Analyze a single track.

    A failed BPM estimate keeps the track's previous BPM; the
    last-analyzed time is updated either way. Safe to re-run.

    Args:
        track: Track to analyze
        beat_source: Returns beat positions for a file path (None on failure)
        key_detector: Optional key detector
        energy_estimator: Optional energy estimator

    Returns:
        Updated copy of the track
    """
    key_detector = key_detector or NullKeyDetector()
    energy_estimator = energy_estimator or NullEnergyEstimator()

    beats = beat_source(track.path)
    bpm = estimate_bpm_from_beats(beats) if beats else None

    updated = track.with_bpm(bpm, datetime.now())

    detected_key = key_detector.detect(track.path)
    if detected_key is not None:
        updated = updated.with_key(*detected_key)

    energy = energy_estimator.estimate(track.path)
    if energy is not None:
        updated = updated.with_energy(energy)

    if bpm is None:
        logger.info("BPM unavailable", path=track.path, previous_bpm=track.bpm)
    else:
        logger.info("Track analyzed", path=track.path, bpm=round(bpm, 2), camelot=updated.camelot)

    return updated


def iter_library_analysis(
    tracks: Sequence[Track],
    beat_source: BeatSource = track_beats,
    key_detector: Optional[KeyDetector] = None,
    energy_estimator: Optional[EnergyEstimator] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Iterator[AnalysisProgress]:
    """
    Analyze tracks sequentially, yielding progress after each one.

    Stops before the next track once cancel_event is set.
    """
    total = len(tracks)
    logger.info("Starting library analysis", track_count=total)

    for index, track in enumerate(tracks):
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Library analysis cancelled", completed=index, total=total)
            return

        analyzed = analyze_track(
            track,
            beat_source=beat_source,
            key_detector=key_detector,
            energy_estimator=energy_estimator,
        )
        yield AnalysisProgress(completed=index + 1, total=total, track=analyzed)

    logger.info("Library analysis complete", track_count=total)


def analyze_library(
    tracks: Sequence[Track],
    on_progress: Optional[ProgressCallback] = None,
    beat_source: BeatSource = track_beats,
    key_detector: Optional[KeyDetector] = None,
    energy_estimator: Optional[EnergyEstimator] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[Track]:
    """
    Analyze multiple tracks with a progress callback.

    Args:
        tracks: Tracks to analyze, processed in order
        on_progress: Called as on_progress(completed, total, track)
        beat_source: Beat position provider
        key_detector: Optional key detector
        energy_estimator: Optional energy estimator
        cancel_event: Set to stop between tracks

    Returns:
        The analyzed tracks (fewer than given if cancelled)
    """
    analyzed = []
    for progress in iter_library_analysis(
        tracks,
        beat_source=beat_source,
        key_detector=key_detector,
        energy_estimator=energy_estimator,
        cancel_event=cancel_event,
    ):
        analyzed.append(progress.track)
        if on_progress:
            on_progress(progress.completed, progress.total, progress.track)
    return analyzed


def select_unanalyzed(tracks: Sequence[Track]) -> List[Track]:
    """Tracks that still have no BPM."""
    return [t for t in tracks if not t.is_analyzed]
