"""Track matching module"""

from vinnies.matching.engine import (
    DEFAULT_MATCH_LIMIT,
    MatchResult,
    find_matches,
    find_matches_for_track,
)
from vinnies.matching.scoring import (
    DEFAULT_BPM_TOLERANCE,
    MatchType,
    bpm_compatible,
)

__all__ = [
    "DEFAULT_MATCH_LIMIT",
    "MatchResult",
    "find_matches",
    "find_matches_for_track",
    "DEFAULT_BPM_TOLERANCE",
    "MatchType",
    "bpm_compatible",
]
