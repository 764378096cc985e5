"""
Theory module for music theory utilities.

Contains:
- Camelot wheel conversion and harmonic compatibility
"""

from .camelot import (
    CAMELOT_WHEEL,
    MAJOR_TO_CAMELOT,
    MINOR_TO_CAMELOT,
    calculate_harmonic_compatibility,
    get_camelot_from_key,
    get_compatible_keys,
    get_key_name,
    get_relative_key,
    parse_camelot,
    wheel_distance,
)

__all__ = [
    "CAMELOT_WHEEL",
    "MAJOR_TO_CAMELOT",
    "MINOR_TO_CAMELOT",
    "calculate_harmonic_compatibility",
    "get_camelot_from_key",
    "get_compatible_keys",
    "get_key_name",
    "get_relative_key",
    "parse_camelot",
    "wheel_distance",
]
