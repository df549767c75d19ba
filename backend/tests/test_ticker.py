import pytest

from versequest import socketio
from versequest.services import sessions as registry
from versequest.services.sessions import get_session, submit_record


@pytest.fixture()
def ticking(flask_app, monkeypatch):
    """Auto-tick on, a three-second intro, and background tasks captured instead of spawned."""
    flask_app.config['TIMER_AUTO_TICK'] = True
    flask_app.config['LEVEL_DURATION_SEC_INTRO'] = 3
    spawned = []
    emitted = []
    monkeypatch.setattr(socketio, 'start_background_task', lambda target, *a, **kw: spawned.append(target))
    monkeypatch.setattr(socketio, 'sleep', lambda seconds=0: None)
    monkeypatch.setattr(socketio, 'emit', lambda event, data=None, **kw: emitted.append((event, data, kw)))
    return spawned, emitted


def _start(client, n=1):
    sid = client.post('/api/sessions', json={'name': 'Ada', 'region': 'North'}).get_json()['session_id']
    assert client.post(f'/api/sessions/{sid}/levels/{n}/start').status_code == 200
    return sid


def _names(emitted, event):
    return [data for name, data, _ in emitted if name == event]


def test_ticker_times_the_level_out_once(client, ticking):
    spawned, emitted = ticking
    sid = _start(client)
    assert len(spawned) == 1
    spawned[0]()

    ticks = _names(emitted, 'level_tick')
    timeouts = _names(emitted, 'level_timeout')
    assert [t['remaining'] for t in ticks] == [2, 1, 0]
    assert len(timeouts) == 1
    assert timeouts[0]['result'] == {'level_type': 'intro', 'score': 0, 'time_remaining': 0, 'correct': False}
    assert all(kw['to'] == f'session:{sid}' and kw['namespace'] == '/ws' for _, _, kw in emitted)
    state = client.get(f'/api/sessions/{sid}').get_json()
    assert len(state['results']) == 1
    assert state['next_level'] == 2


def test_reset_stops_a_running_ticker(client, ticking):
    spawned, emitted = ticking
    sid = _start(client)
    client.post(f'/api/sessions/{sid}/reset')
    spawned[0]()
    assert _names(emitted, 'level_tick') == []
    assert _names(emitted, 'level_timeout') == []
    assert get_session(sid).session.results == []


def test_previous_level_ticker_exits_when_next_level_starts(client, ticking):
    from test_api import correct_answer

    spawned, emitted = ticking
    sid = _start(client)
    client.post(f'/api/sessions/{sid}/answer', json=correct_answer(sid))
    assert client.post(f'/api/sessions/{sid}/levels/2/start').status_code == 200
    assert len(spawned) == 2
    spawned[0]()
    assert _names(emitted, 'level_tick') == []
    assert get_session(sid).session.timer.running


def test_background_submit_records_the_outcome(flask_app, client, ticking, leaderboard, monkeypatch):
    from test_leaderboard import make_record

    spawned, _ = ticking
    sid = _start(client)
    handle = get_session(sid)
    monkeypatch.setitem(flask_app.config, 'TESTING', False)
    submit_record(flask_app, handle, make_record('Ada'))
    assert handle.submission is None
    # The ticker for level 1 is spawned[0]; the submit is the latest task
    spawned[-1]()
    assert handle.submission.persisted
    assert [e['name'] for e in leaderboard.view()['entries']] == ['Ada']
    registry.discard_session(sid)
