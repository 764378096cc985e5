"""
BPM estimation from beat timestamps.

The beat positions come from an external beat tracker (aubiotrack);
this module only turns them into a tempo.
"""

from typing import Optional, Sequence

import numpy as np
import structlog

logger = structlog.get_logger()

# Beat intervals outside this window are double triggers or missed beats
MIN_BEAT_INTERVAL = 0.1
MAX_BEAT_INTERVAL = 2.0

# Plausible tempo range for octave correction
MIN_BPM = 60.0
MAX_BPM = 200.0


def estimate_bpm_from_beats(beat_times: Sequence[float]) -> Optional[float]:
    """
    Estimate the tempo of a track from its beat positions.

    Args:
        beat_times: Beat positions in seconds, in temporal order

    Returns:
        BPM, or None if there are not enough usable beats
    """
    beats = np.asarray(beat_times, dtype=float)
    beats = beats[beats > 0]

    if len(beats) < 2:
        logger.debug("Not enough beats for BPM", beats_count=len(beats))
        return None

    # Filter outliers (beats too close or too far apart)
    intervals = np.diff(beats)
    valid_intervals = intervals[
        (intervals > MIN_BEAT_INTERVAL) & (intervals < MAX_BEAT_INTERVAL)
    ]

    if len(valid_intervals) == 0:
        logger.debug("No valid beat intervals", beats_count=len(beats))
        return None

    raw_bpm = 60.0 / float(np.mean(valid_intervals))
    bpm = correct_octave(raw_bpm)

    logger.debug(
        "BPM estimated from beats",
        bpm=bpm,
        raw_bpm=raw_bpm,
        beats_count=len(beats),
        intervals_used=len(valid_intervals),
    )
    return bpm


def correct_octave(bpm: float) -> float:
    """
    Fold half/double tempo detections back into the dance range.

    Single pass: below 60 is doubled, above 200 is halved.
    """
    if bpm < MIN_BPM:
        return bpm * 2
    if bpm > MAX_BPM:
        return bpm / 2
    return bpm
