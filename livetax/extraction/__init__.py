"""
Extraction package.

Turns untrusted extractor output into reviewable candidates.
"""

from livetax.extraction.normalizer import (
    categorize_by_keywords,
    normalize_candidate,
    normalize_candidates,
)

__all__ = [
    "categorize_by_keywords",
    "normalize_candidate",
    "normalize_candidates",
]
