"""Per-level countdown.

The timer owns only its own state. It does not score or advance levels; the
session reacts to the timeout signal returned by ``tick()``.

    timer = LevelTimer()
    timer.start(30)
    if timer.tick():          # once per second
        ...                   # handle timeout, fires exactly once
"""

import enum
import logging

logger = logging.getLogger(__name__)


class TimerState(str, enum.Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    EXPIRED = 'expired'
    CANCELLED = 'cancelled'


class LevelTimer:

    def __init__(self) -> None:
        self.state = TimerState.IDLE
        self.duration = 0
        self.remaining = 0

    @property
    def elapsed(self) -> int:
        return self.duration - self.remaining

    @property
    def running(self) -> bool:
        return self.state is TimerState.RUNNING

    def start(self, duration: int) -> None:
        """Arm the timer for a new level. Only way back into Running."""
        if duration <= 0:
            raise ValueError('timer duration must be positive')
        self.duration = int(duration)
        self.remaining = int(duration)
        self.state = TimerState.RUNNING

    def tick(self) -> bool:
        """Advance one second. Returns True only on the tick that expires the timer."""
        if self.state is not TimerState.RUNNING:
            return False
        self.remaining = max(0, self.remaining - 1)
        if self.remaining == 0:
            self.state = TimerState.EXPIRED
            logger.info(f"[timer-expired] duration={self.duration}s")
            return True
        return False

    def cancel(self) -> int:
        """Stop a running timer (answer submitted). Returns the seconds left."""
        if self.state is TimerState.RUNNING:
            self.state = TimerState.CANCELLED
        return self.remaining

    def reset(self) -> None:
        self.state = TimerState.IDLE
        self.duration = 0
        self.remaining = 0
