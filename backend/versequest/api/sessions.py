from flask import Blueprint, current_app, jsonify, request

from versequest import socketio
from versequest.engine.errors import ValidationError, VerseQuestError
from versequest.engine.generator import LevelAnswer
from versequest.engine.verification import GateState
from versequest.services.sessions import (
    create_session,
    current_leaderboard,
    discard_session,
    get_session,
    start_ticker,
    stop_ticker,
    submit_once,
    submit_record,
)

sessions = Blueprint('sessions', __name__)


@sessions.errorhandler(VerseQuestError)
def handle_domain_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


def _not_found(session_id):
    return jsonify({'error': f'Session {session_id} not found'}), 404


def _state(handle, **extra):
    payload = handle.session.to_dict()
    payload['session_id'] = handle.id
    payload.update(extra)
    return payload


@sessions.route('', methods=['POST'])
def create():
    """Capture the player and open a session. The security code is shown only here."""
    data = request.get_json(silent=True) or {}
    handle = create_session(current_app.config)
    try:
        with handle.lock:
            handle.session.capture_player(data.get('name'), data.get('region'))
    except ValidationError:
        discard_session(handle.id)
        raise
    current_app.logger.info(f"[session-create] session={handle.id}")
    return jsonify(_state(handle, security_code=handle.session.security_code)), 201


@sessions.route('/<string:session_id>', methods=['GET'])
def get_state(session_id):
    handle = get_session(session_id)
    if not handle:
        return _not_found(session_id)
    with handle.lock:
        return jsonify(_state(handle))


@sessions.route('/<string:session_id>', methods=['DELETE'])
def abandon(session_id):
    if not get_session(session_id):
        return _not_found(session_id)
    discard_session(session_id)
    current_app.logger.info(f"[session-abandon] session={session_id}")
    return jsonify({'ok': True})


@sessions.route('/<string:session_id>/player', methods=['POST'])
def capture_player(session_id):
    """Capture a new player on a session that was reset for replay."""
    handle = get_session(session_id)
    if not handle:
        return _not_found(session_id)
    data = request.get_json(silent=True) or {}
    with handle.lock:
        handle.session.capture_player(data.get('name'), data.get('region'))
        return jsonify(_state(handle, security_code=handle.session.security_code)), 201


@sessions.route('/<string:session_id>/levels/<int:ordinal>/start', methods=['POST'])
def start_level(session_id, ordinal):
    handle = get_session(session_id)
    if not handle:
        return _not_found(session_id)
    with handle.lock:
        handle.session.start_level(ordinal)
        payload = _state(handle)
    start_ticker(current_app._get_current_object(), handle)
    return jsonify(payload)


@sessions.route('/<string:session_id>/answer', methods=['POST'])
def submit_answer(session_id):
    handle = get_session(session_id)
    if not handle:
        return _not_found(session_id)
    answer = LevelAnswer.from_dict(request.get_json(silent=True) or {})
    with handle.lock:
        result = handle.session.submit_level_answer(answer)
        payload = _state(handle, result=result.to_dict())
    socketio.emit('level_result', {'result': result.to_dict()}, to=handle.room, namespace='/ws')
    return jsonify(payload)


@sessions.route('/<string:session_id>/tick', methods=['POST'])
def tick(session_id):
    """Advance the running level's clock by one second (client-driven timing)."""
    handle = get_session(session_id)
    if not handle:
        return _not_found(session_id)
    with handle.lock:
        result = handle.session.on_tick()
        payload = _state(handle, timed_out=result is not None,
                         result=result.to_dict() if result else None)
    return jsonify(payload)


@sessions.route('/<string:session_id>/verify', methods=['POST'])
def verify(session_id):
    handle = get_session(session_id)
    if not handle:
        return _not_found(session_id)
    data = request.get_json(silent=True) or {}
    with handle.lock:
        outcome = handle.session.verify_code(str(data.get('code') or ''))
        record = handle.session.final_record() if outcome.state is GateState.VERIFIED else None
    body = outcome.to_dict()
    if outcome.incomplete:
        body['error'] = outcome.message
        return jsonify(body), 400
    if outcome.state is GateState.LOCKED:
        body['remediation'] = 'replay'
    if record is not None:
        submit_record(current_app._get_current_object(), handle, record)
        body['record'] = record.to_dict()
    return jsonify(body)


@sessions.route('/<string:session_id>/forgot', methods=['POST'])
def forgot(session_id):
    handle = get_session(session_id)
    if not handle:
        return _not_found(session_id)
    with handle.lock:
        outcome = handle.session.forgot_code()
    body = outcome.to_dict()
    if outcome.state is GateState.LOCKED:
        body['remediation'] = 'replay'
    return jsonify(body)


@sessions.route('/<string:session_id>/reset', methods=['POST'])
def reset(session_id):
    handle = get_session(session_id)
    if not handle:
        return _not_found(session_id)
    stop_ticker(handle)
    with handle.lock:
        handle.session.reset()
        handle.submission = None
        return jsonify(_state(handle))


@sessions.route('/<string:session_id>/record', methods=['GET'])
def final_record(session_id):
    handle = get_session(session_id)
    if not handle:
        return _not_found(session_id)
    with handle.lock:
        record = handle.session.final_record()
    return jsonify({
        'record': record.to_dict(),
        'submission': handle.submission.to_dict() if handle.submission else None,
    })


@sessions.route('/<string:session_id>/record/submit', methods=['POST'])
def retry_submit(session_id):
    """Explicit retry after a failed leaderboard write. Repeats are no-ops."""
    handle = get_session(session_id)
    if not handle:
        return _not_found(session_id)
    with handle.lock:
        record = handle.session.final_record()
    outcome = submit_once(current_leaderboard(), handle, record)
    return jsonify({'record': record.to_dict(), 'submission': outcome.to_dict()})
