"""Game session engine: levels, puzzles, timer, scoring and verification.

Pure Python. Nothing in this package imports Flask or touches the database,
so it can be driven directly from tests or from the HTTP layer.
"""

from .errors import (  # noqa: F401
    ContentConfigurationError,
    LevelSequenceError,
    LockoutError,
    PersistenceError,
    PurgeDenied,
    ValidationError,
    VerseQuestError,
)
from .generator import LevelAnswer, LevelGenerator  # noqa: F401
from .session import GameSession, LevelResult, PlayerProfile, SessionRecord  # noqa: F401
