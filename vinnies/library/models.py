"""
Track record for the music library.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from vinnies.theory.camelot import get_camelot_from_key


@dataclass(frozen=True)
class Track:
    """One audio file and its analysis state."""
    path: str
    title: Optional[str] = None
    artist: Optional[str] = None
    bpm: Optional[float] = None
    key: Optional[int] = None  # 0-11, C to B
    mode: Optional[int] = None  # 0=minor, 1=major
    camelot: Optional[str] = None  # derived from key + mode
    energy: Optional[float] = None  # 0-1, not estimated yet
    last_analyzed: Optional[datetime] = None

    def __post_init__(self):
        if self.key is not None and self.mode is not None:
            object.__setattr__(self, "camelot", get_camelot_from_key(self.key, self.mode))

    @property
    def id(self) -> str:
        return self.path

    @property
    def display_title(self) -> str:
        if self.title:
            return self.title
        return Path(self.path).stem

    @property
    def display_artist(self) -> str:
        return self.artist or ""

    @property
    def is_analyzed(self) -> bool:
        return self.bpm is not None

    def with_bpm(self, bpm: Optional[float], analyzed_at: datetime) -> "Track":
        """
        Record a tempo analysis pass.

        A failed estimate (None) keeps the previous BPM; the
        analysis timestamp is updated either way.
        """
        if bpm is None:
            return replace(self, last_analyzed=analyzed_at)
        return replace(self, bpm=float(bpm), last_analyzed=analyzed_at)

    def with_key(self, key: int, mode: int) -> "Track":
        """Set key and mode; the Camelot code follows from them."""
        return replace(self, key=key, mode=mode)

    def with_energy(self, energy: float) -> "Track":
        return replace(self, energy=max(0.0, min(1.0, float(energy))))

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form, field names as stored in the library file."""
        return {
            "path": self.path,
            "title": self.title,
            "artist": self.artist,
            "bpm": self.bpm,
            "key": self.key,
            "mode": self.mode,
            "camelot": self.camelot,
            "energy": self.energy,
            "lastAnalyzed": self.last_analyzed.isoformat() if self.last_analyzed else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        """
        Build a Track from its stored form.

        Raises:
            ValueError: If the record has no path or a field has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError(f"Track record must be an object, got {type(data).__name__}")

        path = data.get("path")
        if not isinstance(path, str) or not path:
            raise ValueError("Track record is missing a path")

        last_analyzed = data.get("lastAnalyzed")
        try:
            return cls(
                path=path,
                title=data.get("title"),
                artist=data.get("artist"),
                bpm=_optional(float, data.get("bpm")),
                key=_optional(int, data.get("key")),
                mode=_optional(int, data.get("mode")),
                camelot=data.get("camelot"),
                energy=_optional(float, data.get("energy")),
                last_analyzed=datetime.fromisoformat(last_analyzed) if last_analyzed else None,
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid track record for {path}: {e}") from e


def _optional(cast, value):
    return None if value is None else cast(value)
