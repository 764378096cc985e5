"""Audio analysis module"""

from vinnies.analysis.analyzer import (
    AnalysisProgress,
    analyze_library,
    analyze_track,
    iter_library_analysis,
    select_unanalyzed,
)
from vinnies.analysis.beat_tracker import is_beat_tracker_available, track_beats
from vinnies.analysis.bpm import estimate_bpm_from_beats

__all__ = [
    "AnalysisProgress",
    "analyze_library",
    "analyze_track",
    "iter_library_analysis",
    "select_unanalyzed",
    "is_beat_tracker_available",
    "track_beats",
    "estimate_bpm_from_beats",
]
