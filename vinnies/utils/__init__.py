"""Utility modules"""

from vinnies.utils.logging import setup_logging

__all__ = [
    "setup_logging",
]
