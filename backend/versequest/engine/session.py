"""One player's run through the five levels.

``GameSession`` is the explicit session context: the HTTP layer and the
background ticker hold a reference to it and go through its methods, there is
no module-level game state. It owns the profile, the security code, the level
timer, the verification gate and the accumulated results.
"""

import enum
import logging
import random
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from . import scoring
from .errors import LevelSequenceError, LockoutError, ValidationError
from .generator import LevelAnswer, LevelGenerator, reference_hint
from .levels import LEVEL_COUNT, LevelDefinition, build_levels
from .timer import LevelTimer
from .verification import DEFAULT_MAX_ATTEMPTS, GateOutcome, GateState, VerificationGate

logger = logging.getLogger(__name__)


class SessionPhase(str, enum.Enum):
    AWAITING_PLAYER = 'awaiting_player'
    PLAYING = 'playing'
    AWAITING_VERIFICATION = 'awaiting_verification'
    VERIFIED = 'verified'
    LOCKED = 'locked'


@dataclass(frozen=True)
class PlayerProfile:
    name: str
    region: str

    def to_dict(self):
        return {'name': self.name, 'region': self.region}


@dataclass(frozen=True)
class LevelResult:
    level_type: str
    score: int
    time_remaining: int
    correct: bool

    def to_dict(self):
        return {
            'level_type': self.level_type,
            'score': self.score,
            'time_remaining': self.time_remaining,
            'correct': self.correct,
        }


@dataclass(frozen=True)
class SessionRecord:
    record_id: str
    profile: PlayerProfile
    security_code: str
    results: Tuple[LevelResult, ...]
    final_score: int

    def breakdown(self) -> Dict[str, int]:
        return scoring.breakdown(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'record_id': self.record_id,
            'profile': self.profile.to_dict(),
            'results': [r.to_dict() for r in self.results],
            'breakdown': self.breakdown(),
            'final_score': self.final_score,
        }


def generate_security_code(rng: random.Random) -> str:
    return str(rng.randint(100000, 999999))


class GameSession:

    def __init__(self, generator: Optional[LevelGenerator] = None,
                 levels: Optional[Sequence[LevelDefinition]] = None,
                 rng: Optional[random.Random] = None,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        self.generator = generator or LevelGenerator()
        self.levels = tuple(levels or build_levels())
        self.rng = rng or random.SystemRandom()
        self.max_attempts = max_attempts
        self.timer = LevelTimer()
        self._subscriptions: List[Any] = []
        self._clear()

    def _clear(self) -> None:
        self.profile: Optional[PlayerProfile] = None
        self.security_code: Optional[str] = None
        self.gate: Optional[VerificationGate] = None
        self.results: List[LevelResult] = []
        self.current_level: Optional[LevelDefinition] = None
        self.puzzle = None
        self._record: Optional[SessionRecord] = None

    # ── Phase ────────────────────────────────────────────────────────────────

    @property
    def phase(self) -> SessionPhase:
        if self.profile is None:
            return SessionPhase.AWAITING_PLAYER
        if len(self.results) < LEVEL_COUNT:
            return SessionPhase.PLAYING
        if self.gate.state is GateState.VERIFIED:
            return SessionPhase.VERIFIED
        if self.gate.state is GateState.LOCKED:
            return SessionPhase.LOCKED
        return SessionPhase.AWAITING_VERIFICATION

    @property
    def next_ordinal(self) -> Optional[int]:
        if len(self.results) >= LEVEL_COUNT:
            return None
        return len(self.results) + 1

    @property
    def final_score(self) -> int:
        return scoring.aggregate(self.results)

    # ── Player ───────────────────────────────────────────────────────────────

    def capture_player(self, name: str, region: str) -> PlayerProfile:
        """Record who is playing and issue the session's security code."""
        if self.profile is not None:
            raise LevelSequenceError('player already captured for this session')
        name = (name or '').strip()
        region = (region or '').strip()
        if not name or not region:
            raise ValidationError('name and region are required')
        self.profile = PlayerProfile(name=name, region=region)
        self.security_code = generate_security_code(self.rng)
        self.gate = VerificationGate(self.security_code, max_attempts=self.max_attempts)
        logger.info(f"[session-player] name={name!r} region={region!r}")
        return self.profile

    # ── Levels ───────────────────────────────────────────────────────────────

    def start_level(self, ordinal: int):
        if self.profile is None:
            raise LevelSequenceError('capture the player before starting a level')
        if self.timer.running:
            raise LevelSequenceError(f'level {self.current_level.ordinal} is still running')
        expected = self.next_ordinal
        if expected is None:
            raise LevelSequenceError('all levels are complete')
        if ordinal != expected:
            raise LevelSequenceError(f'expected level {expected}, got {ordinal}')
        level = self.levels[ordinal - 1]
        self.current_level = level
        self.puzzle = self.generator.generate(level)
        self.timer.start(level.duration)
        logger.info(f"[level-start] level={ordinal} type={level.level_type} duration={level.duration}s content={self.puzzle.content_id}")
        return self.puzzle

    def submit_level_answer(self, answer: LevelAnswer) -> LevelResult:
        if not self.timer.running or self.puzzle is None:
            raise LevelSequenceError('no level is accepting answers')
        correct = self.puzzle.check(answer)
        remaining = self.timer.cancel()
        level_type = self.current_level.level_type
        result = LevelResult(
            level_type=level_type,
            score=scoring.score(remaining, level_type, correct),
            time_remaining=remaining,
            correct=correct,
        )
        self._record_result(result)
        return result

    def on_tick(self) -> Optional[LevelResult]:
        """Advance the level clock one second. Returns the timeout result when it expires."""
        if not self.timer.tick():
            return None
        level_type = self.current_level.level_type
        result = LevelResult(level_type=level_type, score=scoring.score(0, level_type, False),
                             time_remaining=0, correct=False)
        self._record_result(result)
        return result

    def _record_result(self, result: LevelResult) -> None:
        if any(r.level_type == result.level_type for r in self.results):
            raise LevelSequenceError(f'level {result.level_type} already has a result')
        self.results.append(result)
        logger.info(
            f"[level-result] level={self.current_level.ordinal} type={result.level_type} "
            f"correct={result.correct} remaining={result.time_remaining}s score={result.score}"
        )

    def reference_hint(self) -> Optional[str]:
        if self.puzzle is None or self.current_level is None:
            return None
        return reference_hint(self.puzzle, self.timer.elapsed, self.current_level.duration)

    # ── Verification ─────────────────────────────────────────────────────────

    def _require_complete(self) -> None:
        if self.profile is None or len(self.results) < LEVEL_COUNT:
            raise LevelSequenceError('finish all levels before verification')

    def verify_code(self, code: str) -> GateOutcome:
        self._require_complete()
        return self.gate.submit_code(code)

    def forgot_code(self) -> GateOutcome:
        self._require_complete()
        return self.gate.forgot_code()

    def final_record(self) -> SessionRecord:
        """The finalised record, only once the gate is Verified.

        The same record (same ``record_id``) is returned on every call so the
        leaderboard can recognise repeated submissions.
        """
        self._require_complete()
        if self.gate.state is GateState.LOCKED:
            raise LockoutError('security code verification failed')
        if self.gate.state is not GateState.VERIFIED:
            raise LevelSequenceError('verify the security code first')
        if self._record is None:
            self._record = SessionRecord(
                record_id=uuid.uuid4().hex,
                profile=self.profile,
                security_code=self.security_code,
                results=tuple(self.results),
                final_score=self.final_score,
            )
        return self._record

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def attach_subscription(self, subscription) -> None:
        """Tie a leaderboard subscription to this session so reset tears it down."""
        self._subscriptions.append(subscription)

    def reset(self) -> None:
        self.timer.reset()
        subscriptions, self._subscriptions = self._subscriptions, []
        for sub in subscriptions:
            sub.unsubscribe()
        self._clear()
        logger.info("[session-reset]")

    def to_dict(self) -> Dict[str, Any]:
        level = self.current_level
        payload = {
            'phase': self.phase.value,
            'profile': self.profile.to_dict() if self.profile else None,
            'next_level': self.next_ordinal,
            'results': [r.to_dict() for r in self.results],
            'score_so_far': self.final_score,
            'level': None,
            'verification': None,
        }
        if level is not None and self.puzzle is not None:
            payload['level'] = {
                'ordinal': level.ordinal,
                'type': level.level_type,
                'duration': level.duration,
                'timer': self.timer.state.value,
                'remaining': self.timer.remaining,
                'puzzle': self.puzzle.to_dict(reference_shown=self.reference_hint()),
            }
        if self.gate is not None and len(self.results) >= LEVEL_COUNT:
            payload['verification'] = {
                'state': self.gate.state.value,
                'attempts_remaining': self.gate.attempts_remaining,
            }
        return payload
