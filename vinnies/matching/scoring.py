"""
Match scoring

Scores how well a candidate track mixes with a reference track by
tempo relationship, key compatibility and energy.
"""

from enum import Enum
from typing import Optional, Tuple

from vinnies.theory.camelot import calculate_harmonic_compatibility

DEFAULT_BPM_TOLERANCE = 3.0

# Weighted combination; BPM dominates because beatmatching comes first
BPM_WEIGHT = 0.5
KEY_WEIGHT = 0.4
ENERGY_WEIGHT = 0.1

# Half-time and double-time matches are not scaled by closeness
RELATED_TEMPO_SCORE = 0.85
# Penalty at the edge of the direct-match window
DIRECT_EDGE_PENALTY = 0.3

UNKNOWN_KEY_SCORE = 0.5
# TODO: replace with a real energy comparison once EnergyEstimator has an implementation
ENERGY_PLACEHOLDER_SCORE = 0.8


class MatchType(Enum):
    """Tempo relationship between a candidate and the reference."""
    DIRECT = "direct"
    HALF_TIME = "half_time"
    DOUBLE_TIME = "double_time"

    @property
    def marker(self) -> str:
        """Short label shown next to a match ("" for direct)."""
        return _MATCH_MARKERS[self]


_MATCH_MARKERS = {
    MatchType.DIRECT: "",
    MatchType.HALF_TIME: "½×",
    MatchType.DOUBLE_TIME: "2×",
}


def bpm_compatible(
    reference_bpm: float,
    candidate_bpm: float,
    tolerance: float = DEFAULT_BPM_TOLERANCE,
) -> Tuple[bool, MatchType]:
    """
    Check if two BPMs can be mixed.

    Tests run in order and the first hit wins:
    - direct: within tolerance
    - half-time: candidate near half the reference, within tolerance / 2
    - double-time: candidate near twice the reference, within tolerance * 2

    Returns:
        (compatible, match_type); match_type is DIRECT when incompatible,
        so callers must check the flag
    """
    if abs(candidate_bpm - reference_bpm) <= tolerance:
        return True, MatchType.DIRECT

    if abs(candidate_bpm - reference_bpm / 2) <= tolerance / 2:
        return True, MatchType.HALF_TIME

    if abs(candidate_bpm - reference_bpm * 2) <= tolerance * 2:
        return True, MatchType.DOUBLE_TIME

    return False, MatchType.DIRECT


def score_bpm(
    reference_bpm: float,
    candidate_bpm: float,
    match_type: MatchType,
    tolerance: float = DEFAULT_BPM_TOLERANCE,
) -> float:
    """
    Score the tempo fit of a compatible candidate.

    Direct matches go from 1.0 (exact) down to 0.7 at the tolerance
    edge; half-time and double-time matches score a flat 0.85.
    """
    if match_type is not MatchType.DIRECT:
        return RELATED_TEMPO_SCORE

    diff = abs(candidate_bpm - reference_bpm)
    return 1.0 - (diff / tolerance) * DIRECT_EDGE_PENALTY


def score_key(reference_camelot: Optional[str], candidate_camelot: Optional[str]) -> float:
    """Harmonic compatibility, or neutral when either key is unknown."""
    if reference_camelot is None or candidate_camelot is None:
        return UNKNOWN_KEY_SCORE
    return calculate_harmonic_compatibility(reference_camelot, candidate_camelot)


def score_energy(reference_energy: Optional[float], candidate_energy: Optional[float]) -> float:
    """Energy fit. Not measured yet, every candidate gets the same score."""
    return ENERGY_PLACEHOLDER_SCORE


def combine_scores(bpm_score: float, key_score: float, energy_score: float) -> float:
    return (
        bpm_score * BPM_WEIGHT +
        key_score * KEY_WEIGHT +
        energy_score * ENERGY_WEIGHT
    )
