"""
Vinnies - harmonic mixing assistant for a local music library.

Estimates track tempo from beat timestamps, assigns Camelot keys and
recommends tracks that mix well with a selected track.
"""

__version__ = "0.1.0"
