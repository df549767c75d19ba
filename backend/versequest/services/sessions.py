"""Live game sessions and their per-level tickers.

Sessions live in memory, keyed by an opaque id handed to the client when the
player is captured. Each handle carries a re-entrant lock so HTTP handlers
and the background ticker never mutate the same session at once. Sessions
left untouched for ``SESSION_IDLE_TTL_SEC`` are evicted when a new one opens.
"""

import random
import threading
import time
import uuid
from typing import Dict, Optional

from flask import current_app

from versequest import socketio
from versequest.engine.generator import LevelGenerator
from versequest.engine.levels import build_levels, durations_from_config
from versequest.engine.session import GameSession
from versequest.engine.verification import DEFAULT_MAX_ATTEMPTS
from versequest.services.leaderboard import SubmitOutcome, SubmitState

DEFAULT_IDLE_TTL_SEC = 1800


class SessionHandle:

    def __init__(self, session_id: str, session: GameSession):
        self.id = session_id
        self.session = session
        self.lock = threading.RLock()
        # Bumped whenever a ticker starts or must stop; a worker holding an older value exits
        self.ticker_generation = 0
        self.submission = None
        self.touched = time.monotonic()

    @property
    def room(self) -> str:
        return f"session:{self.id}"


_sessions: Dict[str, SessionHandle] = {}


def build_session(config) -> GameSession:
    seed = config.get('GAME_SEED')
    rng = random.Random(seed) if seed is not None else None
    return GameSession(
        generator=LevelGenerator(rng=rng),
        levels=build_levels(durations_from_config(config)),
        rng=rng,
        max_attempts=int(config.get('VERIFY_MAX_ATTEMPTS', DEFAULT_MAX_ATTEMPTS)),
    )


def create_session(config) -> SessionHandle:
    evict_idle(float(config.get('SESSION_IDLE_TTL_SEC', DEFAULT_IDLE_TTL_SEC)))
    session_id = uuid.uuid4().hex
    handle = SessionHandle(session_id, build_session(config))
    _sessions[session_id] = handle
    return handle


def get_session(session_id: str) -> Optional[SessionHandle]:
    handle = _sessions.get(session_id)
    if handle is not None:
        handle.touched = time.monotonic()
    return handle


def discard_session(session_id: str) -> None:
    """Abandon a session: stop its ticker and tear down its subscriptions."""
    handle = _sessions.pop(session_id, None)
    if handle is None:
        return
    with handle.lock:
        handle.ticker_generation += 1
        handle.session.reset()


def evict_idle(ttl: float, now: Optional[float] = None) -> int:
    """Discard sessions idle for longer than ``ttl`` seconds. Returns how many went."""
    now = time.monotonic() if now is None else now
    stale = [sid for sid, handle in list(_sessions.items()) if now - handle.touched > ttl]
    for sid in stale:
        discard_session(sid)
    if stale:
        current_app.logger.info(f"[session-evict] count={len(stale)} remaining={len(_sessions)}")
    return len(stale)


def session_count() -> int:
    return len(_sessions)


def stop_ticker(handle: SessionHandle) -> None:
    with handle.lock:
        handle.ticker_generation += 1


def start_ticker(app, handle: SessionHandle) -> None:
    """Drive the running level's clock once per second from a background task.

    No-ops when ``TIMER_AUTO_TICK`` is off (clients then call the tick route).
    """
    if not app.config.get('TIMER_AUTO_TICK', True):
        return
    with handle.lock:
        handle.ticker_generation += 1
        generation = handle.ticker_generation
        ordinal = handle.session.current_level.ordinal if handle.session.current_level else None
    app.logger.info(f"[ticker-start] session={handle.id} level={ordinal}")

    def _worker():
        while True:
            socketio.sleep(1)
            with handle.lock:
                if handle.ticker_generation != generation or not handle.session.timer.running:
                    app.logger.info(f"[ticker-stop] session={handle.id} level={ordinal}")
                    return
                result = handle.session.on_tick()
                remaining = handle.session.timer.remaining
            socketio.emit('level_tick', {'level': ordinal, 'remaining': remaining}, to=handle.room, namespace='/ws')
            if result is not None:
                socketio.emit('level_timeout', {'level': ordinal, 'result': result.to_dict()},
                              to=handle.room, namespace='/ws')
                return

    socketio.start_background_task(_worker)


def submit_once(sync, handle: SessionHandle, record) -> SubmitOutcome:
    """Submit ``record`` unless this session already persisted it.

    The session remembers its own success, so a record removed by a purge is
    never written back by a late retry.
    """
    if handle.submission is not None and handle.submission.persisted:
        return SubmitOutcome('skipped', SubmitState.DONE)
    outcome = sync.submit(record)
    if outcome.status != 'skipped':
        handle.submission = outcome
    return outcome


def submit_record(app, handle: SessionHandle, record) -> None:
    """Fire-and-forget leaderboard write for a verified session.

    Runs inline under TESTING so tests see the outcome deterministically.
    """
    sync = app.extensions['versequest.leaderboard']

    def _worker():
        with app.app_context():
            submit_once(sync, handle, record)

    if app.config.get('TESTING'):
        _worker()
    else:
        socketio.start_background_task(_worker)


def current_leaderboard():
    return current_app.extensions['versequest.leaderboard']
