from flask import current_app, request
from flask_socketio import emit

from xword import sessions, socketio
from xword.errors import GameEventError
from xword.models import normalize_gid
from xword.services.broadcast import NAMESPACE, room_for


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _gid(data):
    return normalize_gid((data or {}).get('gid'))


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    gids = sessions.unsubscribe_all(_get_sid())
    if gids:
        current_app.logger.info(f"[disconnect] sid={_get_sid()} games={sorted(gids)}")


def handle_join_game(data):
    gid = _gid(data)
    if not gid:
        emit('error', {'message': 'gid is required'})
        return
    last_seq = (data or {}).get('last_seq')
    if last_seq is not None and (isinstance(last_seq, bool) or not isinstance(last_seq, int)):
        emit('error', {'message': 'last_seq must be an integer'})
        return
    subscription = sessions.subscribe(gid, _get_sid(), last_seq=last_seq)
    emit('joined', {'gid': gid, 'room': room_for(gid), 'cursor': subscription.cursor})


def handle_leave_game(data):
    gid = _gid(data)
    if not gid:
        emit('error', {'message': 'gid is required'})
        return
    sessions.unsubscribe(gid, _get_sid())
    emit('left', {'gid': gid, 'room': room_for(gid)})


def handle_propose(data):
    """Order a client's event. Returns an ack for clients that ask for one."""
    gid = _gid(data)
    if not gid:
        emit('error', {'message': 'gid is required'})
        return {'ok': False, 'error': 'gid is required'}
    event = (data or {}).get('event')
    try:
        ordered = sessions.propose(gid, event, sid=_get_sid())
    except GameEventError as exc:
        current_app.logger.info(f"[rejected] gid={gid} sid={_get_sid()} error={exc.message}")
        emit('rejected', {'gid': gid, 'error': exc.message, 'event': event})
        return {'ok': False, 'error': exc.message}
    return {'ok': True, 'seq': ordered['seq']}


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('join_game', handle_join_game, namespace=NAMESPACE)
    socketio.on_event('leave_game', handle_leave_game, namespace=NAMESPACE)
    socketio.on_event('propose', handle_propose, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
