"""Timing declarations and interval indexing.

Contains:
- normalize_timing: declaration -> canonical [start, end) interval
- RangeIndex: closed-interval overlap queries
"""

from .normalizer import (
    TimingDeclaration,
    NormalizedTiming,
    normalize_timing,
    project_timing,
)
from .range_index import RangeIndex

__all__ = [
    'TimingDeclaration',
    'NormalizedTiming',
    'normalize_timing',
    'project_timing',
    'RangeIndex',
]
