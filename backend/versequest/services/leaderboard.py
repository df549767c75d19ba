"""Leaderboard synchronisation.

- ``submit`` writes a finalised session record at most once
- ``subscribe`` combines store push notifications with a polling fallback
- reads go through a versioned snapshot cache; older or repeated versions are ignored
- ``purge`` wipes the board behind the admin key
"""

import enum
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from versequest import socketio
from versequest.engine.errors import PersistenceError, PurgeDenied

from .store import Change, DuplicateRecord, LeaderboardSnapshot

logger = logging.getLogger(__name__)

DEFAULT_POLL_SEC = 5.0
DEFAULT_LIMIT = 100


class SubmitState(str, enum.Enum):
    IDLE = 'idle'
    IN_FLIGHT = 'in_flight'
    DONE = 'done'


@dataclass(frozen=True)
class SubmitOutcome:
    status: str  # persisted, skipped, failed
    state: SubmitState
    entry: Optional[dict] = None
    error: Optional[str] = None

    @property
    def persisted(self) -> bool:
        return self.status == 'persisted'

    def to_dict(self):
        return {'status': self.status, 'state': self.state.value, 'entry': self.entry, 'error': self.error}


def _sort_time(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value or ''


def rank(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Order by final score descending, earliest submission first on ties.

    Rank is positional and computed here only; it is never stored.
    """
    ordered = sorted(
        records,
        key=lambda r: (-int(r.get('final_score') or 0), _sort_time(r.get('created_at')), r.get('id') or 0),
    )
    return [dict(r, rank=i) for i, r in enumerate(ordered, start=1)]


class Subscription:
    """Handle returned by ``LeaderboardSync.subscribe``; ``unsubscribe`` closes push and poll."""

    def __init__(self, sync: 'LeaderboardSync', on_change: Callable[[LeaderboardSnapshot], None]):
        self._sync = sync
        self._on_change = on_change
        self._stop = threading.Event()
        self.last_version = -1

    @property
    def active(self) -> bool:
        return not self._stop.is_set()

    def deliver(self, snapshot: LeaderboardSnapshot) -> bool:
        if not self.active or snapshot.version <= self.last_version:
            return False
        self.last_version = snapshot.version
        self._on_change(snapshot)
        return True

    def _on_push(self, change: Change) -> None:
        if change.version <= self.last_version:
            return
        self.deliver(self._sync.refresh())

    def _poll(self) -> None:
        while self.active:
            socketio.sleep(self._sync.poll_interval)
            if not self.active:
                return
            self.deliver(self._sync.refresh())

    def unsubscribe(self) -> None:
        if self._stop.is_set():
            return
        self._stop.set()
        self._sync.store.remove_listener(self._on_push)
        self._sync._forget(self)
        logger.info("[leaderboard-unsubscribe]")


class LeaderboardSync:

    def __init__(self, store, spawn: Optional[Callable] = None, poll_interval: float = DEFAULT_POLL_SEC,
                 limit: int = DEFAULT_LIMIT, check_admin_key: Optional[Callable[[str], bool]] = None,
                 hash_code: Optional[Callable[[str], str]] = None):
        self.store = store
        self.poll_interval = poll_interval
        self.limit = limit
        self._spawn = spawn
        self._check_admin_key = check_admin_key
        self._hash_code = hash_code
        self._guards: Dict[str, SubmitState] = {}
        self._guard_lock = threading.Lock()
        self._snapshot = LeaderboardSnapshot(version=-1, entries=())
        self._subscriptions: List[Subscription] = []

    # ── Submit ───────────────────────────────────────────────────────────────

    def submit_state(self, record_id: str) -> SubmitState:
        return self._guards.get(record_id, SubmitState.IDLE)

    def submit(self, record) -> SubmitOutcome:
        """Persist ``record`` once. A submission already in flight is a no-op.

        Only in-flight ids are guarded here; a completed record is caught by the
        unique ``record_id`` column and comes back ``skipped``. Store failures
        come back as a ``failed`` outcome instead of an exception; the caller
        still has the local score.
        """
        with self._guard_lock:
            if record.record_id in self._guards:
                return SubmitOutcome('skipped', SubmitState.IN_FLIGHT)
            self._guards[record.record_id] = SubmitState.IN_FLIGHT
        try:
            code_hash = self._hash_code(record.security_code) if self._hash_code and record.security_code else None
            entry = self.store.insert(record, security_code_hash=code_hash)
        except DuplicateRecord:
            logger.info(f"[leaderboard-submit-duplicate] record={record.record_id}")
            return SubmitOutcome('skipped', SubmitState.DONE)
        except PersistenceError as exc:
            logger.warning(f"[leaderboard-submit-failed] record={record.record_id} error={exc}")
            return SubmitOutcome('failed', SubmitState.IDLE, error=str(exc))
        finally:
            with self._guard_lock:
                self._guards.pop(record.record_id, None)
        logger.info(f"[leaderboard-submit] record={record.record_id} score={record.final_score}")
        return SubmitOutcome('persisted', SubmitState.DONE, entry=entry)

    # ── Snapshot cache ───────────────────────────────────────────────────────

    @property
    def snapshot(self) -> LeaderboardSnapshot:
        return self._snapshot

    def apply(self, snapshot: LeaderboardSnapshot) -> bool:
        """Install ``snapshot`` only if it is newer than the cached one."""
        if snapshot.version <= self._snapshot.version:
            return False
        self._snapshot = snapshot
        return True

    def refresh(self) -> LeaderboardSnapshot:
        """Re-read the store. A failed read keeps the last snapshot (stale, not cleared)."""
        try:
            self.apply(self.store.snapshot(limit=self.limit))
        except PersistenceError as exc:
            logger.warning(f"[leaderboard-read-failed] serving version={self._snapshot.version} error={exc}")
        return self._snapshot

    def view(self) -> Dict[str, Any]:
        snap = self.refresh()
        return {'version': snap.version, 'entries': rank(snap.entries)}

    # ── Subscriptions ────────────────────────────────────────────────────────

    def subscribe(self, on_change: Callable[[LeaderboardSnapshot], None]) -> Subscription:
        sub = Subscription(self, on_change)
        self.store.add_listener(sub._on_push)
        self._subscriptions.append(sub)
        if self._spawn is not None and self.poll_interval > 0:
            self._spawn(sub._poll)
        sub.deliver(self.refresh())
        logger.info(f"[leaderboard-subscribe] poll={self.poll_interval}s active={len(self._subscriptions)}")
        return sub

    def _forget(self, sub: Subscription) -> None:
        try:
            self._subscriptions.remove(sub)
        except ValueError:
            pass

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def close(self) -> None:
        for sub in list(self._subscriptions):
            sub.unsubscribe()

    # ── Admin ────────────────────────────────────────────────────────────────

    def purge(self, admin_key: str) -> int:
        if not admin_key or self._check_admin_key is None or not self._check_admin_key(admin_key):
            logger.warning("[leaderboard-purge-denied]")
            raise PurgeDenied('incorrect admin key')
        deleted, _ = self.store.delete_all()
        self.refresh()
        return deleted
