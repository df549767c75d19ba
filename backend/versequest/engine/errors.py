"""Typed errors raised by the game engine and the leaderboard services.

Routes translate these into HTTP responses; nothing here knows about Flask.
"""


class VerseQuestError(Exception):
    """Base class for every domain error."""

    status_code = 400

    def to_dict(self):
        return {'error': str(self), 'kind': type(self).__name__}


class ValidationError(VerseQuestError):
    """Input rejected before any state changed (incomplete code, empty selection...)."""

    status_code = 400


class LevelSequenceError(VerseQuestError):
    """Operation not legal in the session's current phase."""

    status_code = 409


class ContentConfigurationError(VerseQuestError):
    """The content bank cannot serve a level type. Fatal, caught at startup."""

    status_code = 500


class PersistenceError(VerseQuestError):
    """Leaderboard store read/write failed. Never fatal to the local session."""

    status_code = 503


class LockoutError(VerseQuestError):
    """Verification retries exhausted or the player gave up on the code."""

    status_code = 423

    def to_dict(self):
        payload = super().to_dict()
        payload['remediation'] = 'replay'
        return payload


class PurgeDenied(VerseQuestError):
    status_code = 403
