"""Level scoring.

Score is weighted non-linearly by the seconds left on the clock so that fast
answers are worth disproportionately more, then scaled per level type.
"""

import math
from typing import Dict, Iterable

from .levels import LEVEL_TYPES

TIME_EXPONENT = 1.3

MULTIPLIERS: Dict[str, float] = {
    'intro': 0.8,
    'mcq': 0.9,
    'easy': 1.0,
    'medium': 1.5,
    'hard': 2.5,
}


def score(remaining_seconds: float, level_type: str, correct: bool) -> int:
    """Score a single level.

    Wrong answers and timeouts (no time left) score 0. Otherwise
    ``floor(remaining_seconds ** 1.3 * multiplier[level_type])``.
    """
    if level_type not in MULTIPLIERS:
        raise ValueError(f"unknown level type: {level_type!r}")
    if not correct or remaining_seconds <= 0:
        return 0
    return int(math.floor(math.pow(remaining_seconds, TIME_EXPONENT) * MULTIPLIERS[level_type]))


def aggregate(results: Iterable) -> int:
    return sum(r.score for r in results)


def breakdown(results: Iterable) -> Dict[str, int]:
    """Per-type scores (0 for a type with no result) plus ``total``."""
    results = list(results)
    out = {level_type: 0 for level_type in LEVEL_TYPES}
    for r in results:
        out[r.level_type] = r.score
    out['total'] = aggregate(results)
    return out
