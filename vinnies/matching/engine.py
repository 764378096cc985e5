"""
Matching engine

Finds library tracks that mix well with a reference track:
- BPM compatibility (direct, half-time, double-time)
- Camelot wheel compatibility for harmonic mixing
- Energy (placeholder)
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

import structlog

from vinnies.library.models import Track
from vinnies.matching.scoring import (
    DEFAULT_BPM_TOLERANCE,
    MatchType,
    bpm_compatible,
    combine_scores,
    score_bpm,
    score_energy,
    score_key,
)

logger = structlog.get_logger()

DEFAULT_MATCH_LIMIT = 15


@dataclass(frozen=True)
class MatchResult:
    """A candidate track and how well it mixes with the reference."""
    track: Track
    score: float
    match_type: MatchType
    bpm_score: float
    key_score: float
    energy_score: float

    @property
    def id(self) -> str:
        return self.track.path


def find_matches(
    reference_bpm: float,
    reference_camelot: Optional[str],
    library: Iterable[Track],
    bpm_tolerance: float = DEFAULT_BPM_TOLERANCE,
    limit: int = DEFAULT_MATCH_LIMIT,
    exclude_path: Optional[str] = None,
    reference_energy: Optional[float] = None,
) -> List[MatchResult]:
    """
    Rank library tracks against a reference BPM and key.

    Tracks without a BPM, or outside every tempo window, are skipped.
    Results are sorted by descending score; equal scores keep library
    order.

    Args:
        reference_bpm: Tempo of the reference track
        reference_camelot: Camelot key of the reference, if known
        library: Candidate tracks
        bpm_tolerance: Direct-match window in BPM
        limit: Maximum number of results
        exclude_path: Path to leave out (usually the reference itself)
        reference_energy: Energy of the reference, if known

    Returns:
        Up to `limit` MatchResults, best first

    Raises:
        ValueError: If bpm_tolerance is not positive
    """
    if bpm_tolerance <= 0:
        raise ValueError(f"BPM tolerance must be positive, got {bpm_tolerance}")

    results: List[MatchResult] = []

    for track in library:
        if track.bpm is None or track.path == exclude_path:
            continue

        compatible, match_type = bpm_compatible(reference_bpm, track.bpm, bpm_tolerance)
        if not compatible:
            continue

        bpm_score = score_bpm(reference_bpm, track.bpm, match_type, bpm_tolerance)
        key_score = score_key(reference_camelot, track.camelot)
        energy_score = score_energy(reference_energy, track.energy)

        results.append(MatchResult(
            track=track,
            score=combine_scores(bpm_score, key_score, energy_score),
            match_type=match_type,
            bpm_score=bpm_score,
            key_score=key_score,
            energy_score=energy_score,
        ))

    results.sort(key=lambda r: r.score, reverse=True)

    logger.debug(
        "Matches found",
        reference_bpm=reference_bpm,
        reference_camelot=reference_camelot,
        candidates=len(results),
        limit=limit,
    )
    return results[:max(limit, 0)]


def find_matches_for_track(
    reference: Track,
    library: Iterable[Track],
    bpm_tolerance: float = DEFAULT_BPM_TOLERANCE,
    limit: int = DEFAULT_MATCH_LIMIT,
) -> List[MatchResult]:
    """
    Find tracks that mix with a library track, excluding the track itself.

    Returns an empty list when the reference has not been analyzed.
    """
    if reference.bpm is None:
        return []

    return find_matches(
        reference_bpm=reference.bpm,
        reference_camelot=reference.camelot,
        library=library,
        bpm_tolerance=bpm_tolerance,
        limit=limit,
        exclude_path=reference.path,
        reference_energy=reference.energy,
    )
