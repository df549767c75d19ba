"""SQL-backed leaderboard store.

Every write (insert or purge) bumps ``LeaderboardRevision.version`` inside the
same transaction, so readers can tell whether a snapshot is newer than the one
they hold. Listeners are told about each committed change.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from flask import has_app_context
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from versequest import db
from versequest.engine.errors import PersistenceError
from versequest.models import LeaderboardEntry, LeaderboardRevision

logger = logging.getLogger(__name__)

REVISION_ROW_ID = 1


@dataclass(frozen=True)
class Change:
    event: str  # INSERT or DELETE
    version: int


@dataclass(frozen=True)
class LeaderboardSnapshot:
    version: int
    entries: Tuple[dict, ...]


class DuplicateRecord(Exception):
    """The record id is already on the board."""


class SqlLeaderboardStore:

    def __init__(self, app=None):
        self.app = app
        self._listeners: List[Callable[[Change], None]] = []

    @contextmanager
    def _app_context(self):
        if has_app_context() or self.app is None:
            yield
        else:
            with self.app.app_context():
                yield

    # ── Change channel ───────────────────────────────────────────────────────

    def add_listener(self, listener: Callable[[Change], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[Change], None]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self, change: Change) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception(f"[store-listener-error] event={change.event} version={change.version}")

    # ── Queries ──────────────────────────────────────────────────────────────

    def _bump_version(self) -> int:
        rev = LeaderboardRevision.query.filter_by(id=REVISION_ROW_ID).with_for_update().first()
        if rev is None:
            rev = LeaderboardRevision(id=REVISION_ROW_ID, version=0)
        rev.version = (rev.version or 0) + 1
        db.session.add(rev)
        return rev.version

    def insert(self, record, security_code_hash: Optional[str] = None) -> dict:
        scores = record.breakdown()
        with self._app_context():
            entry = LeaderboardEntry(
                record_id=record.record_id,
                name=record.profile.name,
                region=record.profile.region,
                security_code=security_code_hash,
                final_score=record.final_score,
                intro_score=scores['intro'],
                mcq_score=scores['mcq'],
                easy_score=scores['easy'],
                medium_score=scores['medium'],
                hard_score=scores['hard'],
            )
            try:
                db.session.add(entry)
                version = self._bump_version()
                db.session.commit()
            except IntegrityError as exc:
                db.session.rollback()
                if LeaderboardEntry.query.filter_by(record_id=record.record_id).first() is not None:
                    raise DuplicateRecord(record.record_id) from exc
                raise PersistenceError(f'leaderboard insert failed: {exc}') from exc
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise PersistenceError(f'leaderboard insert failed: {exc}') from exc
            payload = entry.to_dict()
        logger.info(f"[store-insert] record={record.record_id} score={record.final_score} version={version}")
        self._notify(Change('INSERT', version))
        return payload

    def snapshot(self, limit: int = 100) -> LeaderboardSnapshot:
        with self._app_context():
            try:
                rev = LeaderboardRevision.query.filter_by(id=REVISION_ROW_ID).first()
                rows = (
                    LeaderboardEntry.query
                    .order_by(LeaderboardEntry.final_score.desc(), LeaderboardEntry.created_at.asc(),
                              LeaderboardEntry.id.asc())
                    .limit(limit)
                    .all()
                )
                entries = tuple(r.to_dict() for r in rows)
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise PersistenceError(f'leaderboard read failed: {exc}') from exc
        return LeaderboardSnapshot(version=rev.version if rev else 0, entries=entries)

    def delete_all(self) -> Tuple[int, int]:
        """Delete every entry in one transaction. Returns (deleted, new_version)."""
        with self._app_context():
            try:
                deleted = LeaderboardEntry.query.delete(synchronize_session=False)
                version = self._bump_version()
                db.session.commit()
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise PersistenceError(f'leaderboard purge failed: {exc}') from exc
        logger.info(f"[store-purge] deleted={deleted} version={version}")
        self._notify(Change('DELETE', version))
        return deleted, version
