from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from versequest import socketio
from versequest.services.leaderboard import rank
from versequest.services.sessions import current_leaderboard, get_session
from typing import Dict, Any


# Live leaderboard subscriptions keyed by socket id
_sid_to_subscription: Dict[str, Any] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    _drop_subscription(_get_sid())


def handle_join_session(data):
    session_id = (data or {}).get('session_id')
    if not session_id:
        emit('error', {'message': 'session_id is required'})
        return
    if not get_session(session_id):
        emit('error', {'message': f'Session {session_id} not found'})
        return
    room = f"session:{session_id}"
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_session(data):
    session_id = (data or {}).get('session_id')
    if not session_id:
        emit('error', {'message': 'session_id is required'})
        return
    room = f"session:{session_id}"
    leave_room(room)
    emit('left', {'room': room})


def handle_subscribe_leaderboard(data):
    """Push ranked snapshots to this socket until it unsubscribes or disconnects.

    When a session_id is given the subscription is tied to that session, so
    resetting or abandoning it also stops the updates.
    """
    sid = _get_sid()
    namespace = request.namespace
    _drop_subscription(sid)

    def _push(snapshot):
        socketio.emit(
            'leaderboard_snapshot',
            {'version': snapshot.version, 'entries': rank(snapshot.entries)},
            to=sid,
            namespace=namespace,
        )

    subscription = current_leaderboard().subscribe(_push)
    _sid_to_subscription[sid] = subscription
    session_id = (data or {}).get('session_id')
    handle = get_session(session_id) if session_id else None
    if handle is not None:
        with handle.lock:
            handle.session.attach_subscription(subscription)
    current_app.logger.info(f"[ws-subscribe] sid={sid} session={session_id}")
    emit('subscribed', {'version': subscription.last_version})


def handle_unsubscribe_leaderboard(data=None):
    _drop_subscription(_get_sid())
    emit('unsubscribed', {})


def handle_ping(data):
    emit('pong', data or {})


def _drop_subscription(sid: str) -> None:
    subscription = _sid_to_subscription.pop(sid, None)
    if subscription is not None:
        subscription.unsubscribe()


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_session': handle_join_session,
        'leave_session': handle_leave_session,
        'subscribe_leaderboard': handle_subscribe_leaderboard,
        'unsubscribe_leaderboard': handle_unsubscribe_leaderboard,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
