"""Services layer - collaborators outside the sync engine"""

from .sage import RummySage

__all__ = [
    "RummySage",
]
