"""Security-code gate in front of the final score.

Two wrong full-length codes lock the gate. Incomplete entries are rejected
locally and never cost an attempt. Asking for help (``forgot_code``) locks
immediately.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
DEFAULT_MAX_ATTEMPTS = 2


class GateState(str, enum.Enum):
    AWAITING_INPUT = 'awaiting_input'
    RETRY = 'retry'
    VERIFIED = 'verified'
    LOCKED = 'locked'


@dataclass(frozen=True)
class GateOutcome:
    state: GateState
    attempts_remaining: int
    message: Optional[str] = None
    incomplete: bool = False

    def to_dict(self):
        return {
            'state': self.state.value,
            'attempts_remaining': self.attempts_remaining,
            'message': self.message,
            'incomplete': self.incomplete,
        }


def _is_code(value: str) -> bool:
    # ASCII digits only; str.isdigit alone also takes e.g. Arabic-Indic digits
    return len(value) == CODE_LENGTH and value.isascii() and value.isdigit()


class VerificationGate:

    def __init__(self, code: str, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        if not _is_code(code):
            raise ValueError(f'security code must be {CODE_LENGTH} digits')
        self._code = code
        self.max_attempts = max(1, int(max_attempts))
        self.retry_count = 0
        self.state = GateState.AWAITING_INPUT

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.retry_count)

    @property
    def terminal(self) -> bool:
        return self.state in (GateState.VERIFIED, GateState.LOCKED)

    def _outcome(self, message=None, incomplete=False) -> GateOutcome:
        return GateOutcome(self.state, self.attempts_remaining, message, incomplete)

    def submit_code(self, entered: str) -> GateOutcome:
        if self.terminal:
            return self._outcome()
        entered = (entered or '').strip()
        if not _is_code(entered):
            # Retry already showed its message; the gate is back to waiting for input
            self.state = GateState.AWAITING_INPUT
            return self._outcome(f'Please enter a {CODE_LENGTH}-digit code', incomplete=True)
        if entered == self._code:
            self.state = GateState.VERIFIED
            logger.info(f"[verify-ok] attempts_used={self.retry_count + 1}")
            return self._outcome()
        self.retry_count += 1
        if self.retry_count >= self.max_attempts:
            self.state = GateState.LOCKED
            logger.info(f"[verify-locked] attempts_used={self.retry_count}")
            return self._outcome('Too many incorrect attempts')
        self.state = GateState.RETRY
        left = self.attempts_remaining
        return self._outcome(f"Incorrect. {left} attempt{'' if left == 1 else 's'} remaining.")

    def forgot_code(self) -> GateOutcome:
        if self.state is not GateState.VERIFIED:
            self.state = GateState.LOCKED
            logger.info(f"[verify-forgot] attempts_used={self.retry_count}")
        return self._outcome()
