"""
Camelot Wheel - key/mode conversion and harmonic compatibility.

The Camelot Wheel is Mark Davis's (Mixed In Key) system for organizing
the 24 musical keys in a circle for easy harmonic mixing.

Outer circle (B) = MAJOR keys
Inner circle (A) = MINOR keys

Moving up a perfect fifth (+7 semitones) moves one step around the wheel,
so adjacent positions and the relative major/minor are the safe moves.
"""

import re
from typing import List, Optional, Tuple

# Pitch class (0=C ... 11=B) to Camelot, one table per mode
MAJOR_TO_CAMELOT = {
    0: "8B",    # C
    1: "3B",    # C#/Db
    2: "10B",   # D
    3: "5B",    # D#/Eb
    4: "12B",   # E
    5: "7B",    # F
    6: "2B",    # F#/Gb
    7: "9B",    # G
    8: "4B",    # G#/Ab
    9: "11B",   # A
    10: "6B",   # A#/Bb
    11: "1B",   # B
}

MINOR_TO_CAMELOT = {
    0: "5A",    # Cm
    1: "12A",   # C#m
    2: "7A",    # Dm
    3: "2A",    # D#m/Ebm
    4: "9A",    # Em
    5: "4A",    # Fm
    6: "11A",   # F#m
    7: "6A",    # Gm
    8: "1A",    # G#m/Abm
    9: "8A",    # Am
    10: "3A",   # A#m/Bbm
    11: "10A",  # Bm
}

DEFAULT_CAMELOT = "1A"

# Display names for every wheel position
CAMELOT_WHEEL = {
    "1A": "Abm", "2A": "Ebm", "3A": "Bbm", "4A": "Fm",
    "5A": "Cm", "6A": "Gm", "7A": "Dm", "8A": "Am",
    "9A": "Em", "10A": "Bm", "11A": "F#m", "12A": "C#m",
    "1B": "B", "2B": "F#", "3B": "Db", "4B": "Ab",
    "5B": "Eb", "6B": "Bb", "7B": "F", "8B": "C",
    "9B": "G", "10B": "D", "11B": "A", "12B": "E",
}

# Same letter: wheel distance -> score
_SAME_MODE_SCORES = {
    1: 0.9,   # adjacent
    2: 0.6,
    3: 0.4,
    4: 0.3,
    5: 0.2,
}
_FAR_SAME_MODE_SCORE = 0.1

_CAMELOT_PATTERN = re.compile(r"([0-9]+)([AB])")


def get_camelot_from_key(key: int, mode: int) -> str:
    """
    Convert a pitch class and mode to Camelot notation.

    Args:
        key: Pitch class, 0=C ... 11=B
        mode: 1 for major, anything else is treated as minor

    Returns:
        Camelot notation (e.g., "8B"); "1A" for an unknown key
    """
    table = MAJOR_TO_CAMELOT if mode == 1 else MINOR_TO_CAMELOT
    return table.get(key, DEFAULT_CAMELOT)


def parse_camelot(camelot: str) -> Optional[Tuple[int, str]]:
    """
    Parse Camelot notation into wheel number and letter.

    Returns None instead of raising for anything that is not
    digits followed by a single "A" or "B" with a number in 1..12.
    """
    if not isinstance(camelot, str) or len(camelot) < 2:
        return None

    match = _CAMELOT_PATTERN.fullmatch(camelot)
    if match is None:
        return None

    number = int(match.group(1))
    if not 1 <= number <= 12:
        return None

    return number, match.group(2)


def wheel_distance(number_a: int, number_b: int) -> int:
    """Circular distance between two wheel numbers (0-6)."""
    raw_distance = abs(number_a - number_b)
    return min(raw_distance, 12 - raw_distance)


def calculate_harmonic_compatibility(key_a: str, key_b: str) -> float:
    """
    Calculate the harmonic compatibility between two Camelot keys.

    | Movement                 | Score              | Example      |
    |--------------------------|--------------------|--------------|
    | Same key                 | 1.0                | 7A -> 7A     |
    | Relative major/minor     | 0.85               | 7A -> 7B     |
    | Same letter, distance d  | 0.9/0.6/0.4/0.3/0.2, then 0.1 | 7A -> 6A |
    | Other letter, distance d | max(0.1, 0.7 - 0.12*d) | 7A -> 9B |

    Args:
        key_a: First Camelot key
        key_b: Second Camelot key

    Returns:
        Score from 0 to 1; 0 if either key cannot be parsed
    """
    parsed_a = parse_camelot(key_a)
    parsed_b = parse_camelot(key_b)
    if parsed_a is None or parsed_b is None:
        return 0.0

    num_a, letter_a = parsed_a
    num_b, letter_b = parsed_b

    if num_a == num_b:
        return 1.0 if letter_a == letter_b else 0.85

    distance = wheel_distance(num_a, num_b)

    if letter_a == letter_b:
        return _SAME_MODE_SCORES.get(distance, _FAR_SAME_MODE_SCORE)

    return max(0.1, 0.7 - distance * 0.12)


def get_compatible_keys(camelot: str) -> List[str]:
    """
    Get the keys that mix perfectly with the given one.

    Returns the same key, one step down, one step up and the
    relative major/minor. Empty for an invalid key.
    """
    parsed = parse_camelot(camelot)
    if parsed is None:
        return []

    num, letter = parsed
    other_letter = "B" if letter == "A" else "A"

    prev_num = 12 if num == 1 else num - 1
    next_num = 1 if num == 12 else num + 1

    return [
        f"{num}{letter}",
        f"{prev_num}{letter}",
        f"{next_num}{letter}",
        f"{num}{other_letter}",
    ]


def get_relative_key(camelot: str) -> Optional[str]:
    """Get the relative major/minor in Camelot notation (8A -> 8B)."""
    parsed = parse_camelot(camelot)
    if parsed is None:
        return None

    num, letter = parsed
    return f"{num}{'B' if letter == 'A' else 'A'}"


def get_key_name(camelot: str) -> Optional[str]:
    """Musical key name for a Camelot code (8A -> "Am")."""
    parsed = parse_camelot(camelot)
    if parsed is None:
        return None
    return CAMELOT_WHEEL[f"{parsed[0]}{parsed[1]}"]
