import threading
import uuid

import pytest
from sqlalchemy.exc import SQLAlchemyError

from versequest import bcrypt
from versequest.engine.errors import PersistenceError, PurgeDenied
from versequest.engine.levels import LEVEL_TYPES
from versequest.engine.session import LevelResult, PlayerProfile, SessionRecord
from versequest.models import LeaderboardEntry
from versequest.services.leaderboard import LeaderboardSync, SubmitState, rank
from versequest.services.store import LeaderboardSnapshot


def make_record(name='Ada', scores=(40, 70, 0, 150, 122), code='123456'):
    results = tuple(LevelResult(t, s, 10, s > 0) for t, s in zip(LEVEL_TYPES, scores))
    return SessionRecord(uuid.uuid4().hex, PlayerProfile(name, 'North'), code, results, sum(scores))


def test_submit_persists_once(leaderboard):
    record = make_record()
    first = leaderboard.submit(record)
    second = leaderboard.submit(record)
    assert first.persisted
    assert second.status == 'skipped'
    assert LeaderboardEntry.query.filter_by(record_id=record.record_id).count() == 1
    row = LeaderboardEntry.query.first()
    assert (row.final_score, row.intro_score, row.hard_score) == (382, 40, 122)


def test_security_code_is_stored_hashed(leaderboard):
    leaderboard.submit(make_record(code='654321'))
    row = LeaderboardEntry.query.first()
    assert row.security_code != '654321'
    assert bcrypt.check_password_hash(row.security_code, '654321')
    assert 'security_code' not in row.to_dict()


def test_submit_in_flight_is_a_noop(leaderboard):
    record = make_record()
    leaderboard._guards[record.record_id] = SubmitState.IN_FLIGHT
    assert leaderboard.submit(record).status == 'skipped'
    assert LeaderboardEntry.query.count() == 0


def test_duplicate_record_from_another_writer_is_skipped(flask_app, leaderboard):
    record = make_record()
    leaderboard.submit(record)
    # A second synchroniser (e.g. another worker) has no local guard
    other = LeaderboardSync(leaderboard.store)
    outcome = other.submit(record)
    assert outcome.status == 'skipped'
    assert outcome.state is SubmitState.DONE
    assert LeaderboardEntry.query.count() == 1


def test_finished_submits_leave_no_guard_behind(leaderboard):
    records = [make_record(f'P{i}') for i in range(5)]
    for record in records:
        assert leaderboard.submit(record).persisted
        assert leaderboard.submit(record).status == 'skipped'
    assert leaderboard._guards == {}
    assert LeaderboardEntry.query.count() == 5


def test_hashing_error_releases_the_guard(leaderboard):
    calls = []

    def flaky_hash(code):
        calls.append(code)
        if len(calls) == 1:
            raise RuntimeError('hasher unavailable')
        return bcrypt.generate_password_hash(code).decode('utf-8')

    sync = LeaderboardSync(leaderboard.store, hash_code=flaky_hash)
    record = make_record()
    with pytest.raises(RuntimeError):
        sync.submit(record)
    assert sync.submit_state(record.record_id) is SubmitState.IDLE
    assert sync.submit(record).persisted
    assert LeaderboardEntry.query.count() == 1


class FlakyStore:
    def __init__(self, inner, failures=1):
        self.inner = inner
        self.failures = failures

    def insert(self, record, security_code_hash=None):
        if self.failures:
            self.failures -= 1
            raise PersistenceError('connection reset')
        return self.inner.insert(record, security_code_hash)

    def __getattr__(self, name):
        return getattr(self.inner, name)


def test_failed_submit_releases_guard_for_retry(leaderboard):
    sync = LeaderboardSync(FlakyStore(leaderboard.store))
    record = make_record()
    failed = sync.submit(record)
    assert failed.status == 'failed'
    assert failed.state is SubmitState.IDLE
    assert 'connection reset' in failed.error
    retried = sync.submit(record)
    assert retried.persisted
    assert sync.submit(record).status == 'skipped'
    assert LeaderboardEntry.query.count() == 1


def test_rank_orders_by_score_then_earliest():
    rows = [
        {'id': 1, 'name': 'late', 'final_score': 300, 'created_at': '2026-01-01T10:00:05'},
        {'id': 2, 'name': 'low', 'final_score': 100, 'created_at': '2026-01-01T09:00:00'},
        {'id': 3, 'name': 'early', 'final_score': 300, 'created_at': '2026-01-01T10:00:01'},
        {'id': 4, 'name': 'top', 'final_score': 500, 'created_at': '2026-01-01T11:00:00'},
    ]
    ranked = rank(rows)
    assert [r['name'] for r in ranked] == ['top', 'early', 'late', 'low']
    assert [r['rank'] for r in ranked] == [1, 2, 3, 4]
    assert 'rank' not in rows[0]


def test_view_ranks_persisted_entries(leaderboard):
    leaderboard.submit(make_record('Ada', (10, 0, 0, 0, 0)))
    leaderboard.submit(make_record('Bob', (90, 0, 0, 0, 0)))
    leaderboard.submit(make_record('Cy', (10, 0, 0, 0, 0)))
    view = leaderboard.view()
    assert [e['name'] for e in view['entries']] == ['Bob', 'Ada', 'Cy']
    assert view['version'] == 3


def test_snapshot_cache_ignores_old_and_repeated_versions(leaderboard):
    newer = LeaderboardSnapshot(5, ({'id': 1, 'final_score': 1},))
    older = LeaderboardSnapshot(4, ())
    assert leaderboard.apply(newer)
    assert not leaderboard.apply(newer)
    assert not leaderboard.apply(older)
    assert leaderboard.snapshot is newer


def test_failed_read_keeps_stale_view(leaderboard, monkeypatch):
    leaderboard.submit(make_record('Ada'))
    before = leaderboard.view()

    def broken(limit=100):
        raise PersistenceError('read timeout')

    monkeypatch.setattr(leaderboard.store, 'snapshot', broken)
    after = leaderboard.view()
    assert after == before
    assert after['entries'][0]['name'] == 'Ada'


def test_subscribe_gets_initial_and_pushed_snapshots(leaderboard):
    received = []
    sub = leaderboard.subscribe(received.append)
    assert [s.version for s in received] == [0]
    leaderboard.submit(make_record('Ada'))
    assert [s.version for s in received] == [0, 1]
    assert received[-1].entries[0]['name'] == 'Ada'
    # Re-delivering the same version is a no-op
    assert not sub.deliver(received[-1])
    sub.unsubscribe()
    leaderboard.submit(make_record('Bob'))
    assert len(received) == 2
    assert leaderboard.subscription_count == 0


def test_unsubscribe_stops_the_poll_loop(leaderboard):
    spawned = []
    sync = LeaderboardSync(leaderboard.store, spawn=spawned.append, poll_interval=0.01)
    received = []
    sub = sync.subscribe(received.append)
    assert len(spawned) == 1
    worker = threading.Thread(target=spawned[0])
    worker.start()
    sub.unsubscribe()
    worker.join(timeout=2)
    assert not worker.is_alive()
    assert sub._on_push not in leaderboard.store._listeners


def test_poll_delivers_changes_missed_by_push(flask_app, leaderboard):
    received = []
    sync = LeaderboardSync(leaderboard.store, poll_interval=0)
    sub = sync.subscribe(received.append)
    # Simulate a lost push: detach the listener, write, then poll once
    leaderboard.store.remove_listener(sub._on_push)
    leaderboard.submit(make_record('Ada'))
    assert len(received) == 1
    sub.deliver(sync.refresh())
    assert [s.version for s in received] == [0, 1]
    sub.unsubscribe()


def test_purge_requires_the_admin_key(leaderboard):
    leaderboard.submit(make_record())
    with pytest.raises(PurgeDenied):
        leaderboard.purge('wrong')
    with pytest.raises(PurgeDenied):
        leaderboard.purge('')
    assert LeaderboardEntry.query.count() == 1


def test_purge_deletes_everything_and_bumps_version(leaderboard):
    leaderboard.submit(make_record('Ada'))
    leaderboard.submit(make_record('Bob'))
    version_before = leaderboard.view()['version']
    assert leaderboard.purge('test-admin') == 2
    view = leaderboard.view()
    assert view['entries'] == []
    assert view['version'] > version_before


def test_purge_is_all_or_nothing(leaderboard, monkeypatch):
    leaderboard.submit(make_record('Ada'))
    leaderboard.submit(make_record('Bob'))

    def fail():
        raise SQLAlchemyError('disk full')

    monkeypatch.setattr(leaderboard.store, '_bump_version', fail)
    with pytest.raises(PersistenceError):
        leaderboard.purge('test-admin')
    assert LeaderboardEntry.query.count() == 2


def test_long_admin_keys_are_compared_in_full():
    from conftest import TestConfig
    from versequest import create_app, db

    class LongKeyConfig(TestConfig):
        ADMIN_KEY = 'k' * 80

    app = create_app(LongKeyConfig)
    with app.app_context():
        db.create_all()
        sync = app.extensions['versequest.leaderboard']
        with pytest.raises(PurgeDenied):
            sync.purge('k' * 79 + 'x')
        assert sync.purge('k' * 80) == 0
        sync.close()
        db.session.remove()
        db.drop_all()


def test_reset_command_bumps_the_version_seen_by_live_views(flask_app, leaderboard):
    leaderboard.submit(make_record('Ada'))
    before = leaderboard.view()
    assert [e['name'] for e in before['entries']] == ['Ada']

    result = flask_app.test_cli_runner().invoke(args=['leaderboard-reset'])
    assert result.exit_code == 0
    assert 'deleted=1' in result.output

    after = leaderboard.view()
    assert after['entries'] == []
    assert after['version'] > before['version']
    leaderboard.submit(make_record('Bob'))
    assert [e['name'] for e in leaderboard.view()['entries']] == ['Bob']


def test_poll_loop_waits_on_socketio_sleep(leaderboard, monkeypatch):
    from versequest import socketio

    spawned, naps = [], []
    sync = LeaderboardSync(leaderboard.store, spawn=spawned.append, poll_interval=5)
    sub = sync.subscribe(lambda snapshot: None)

    def nap(seconds):
        naps.append(seconds)
        if len(naps) == 2:
            sub.unsubscribe()

    monkeypatch.setattr(socketio, 'sleep', nap)
    spawned[0]()
    assert naps == [5, 5]
    assert not sub.active
