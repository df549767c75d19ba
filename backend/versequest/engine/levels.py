"""The fixed five-level sequence a session walks through."""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

INTRO = 'intro'
MCQ = 'mcq'
EASY = 'easy'
MEDIUM = 'medium'
HARD = 'hard'

LEVEL_TYPES: Tuple[str, ...] = (INTRO, MCQ, EASY, MEDIUM, HARD)

# Levels whose puzzle is a set of fragments to put back in order
FRAGMENT_TYPES = frozenset({INTRO, EASY, MEDIUM, HARD})

DEFAULT_DURATIONS: Dict[str, int] = {
    INTRO: 30,
    MCQ: 20,
    EASY: 30,
    MEDIUM: 30,
    HARD: 30,
}

LEVEL_COUNT = len(LEVEL_TYPES)


@dataclass(frozen=True)
class LevelDefinition:
    ordinal: int
    level_type: str
    duration: int

    @property
    def is_fragment_level(self) -> bool:
        return self.level_type in FRAGMENT_TYPES


def build_levels(durations: Optional[Mapping[str, int]] = None) -> Tuple[LevelDefinition, ...]:
    merged = dict(DEFAULT_DURATIONS)
    if durations:
        merged.update(durations)
    return tuple(
        LevelDefinition(ordinal=i + 1, level_type=t, duration=int(merged[t]))
        for i, t in enumerate(LEVEL_TYPES)
    )


def durations_from_config(config: Mapping) -> Dict[str, int]:
    """Read ``LEVEL_DURATION_SEC_<TYPE>`` keys, falling back to the defaults."""
    return {
        t: int(config.get(f'LEVEL_DURATION_SEC_{t.upper()}', DEFAULT_DURATIONS[t]))
        for t in LEVEL_TYPES
    }
