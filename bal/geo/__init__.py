"""Geographic utilities for BAL interchange.

Modules:
 - projection: WGS84 to Lambert-93 projection and coordinate rounding
"""

__all__ = [
    "projection",
]
