from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from flask_login import current_user
from typing import Dict, Any

from quizhost.services.quiz.sync import MEDIA_ACTIONS
from quizhost.sessions import NAMESPACE, CommandError, get_registry, room_for


_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(reason=None):
    _sid_to_ctx.pop(_get_sid(), None)


def handle_join_session(data):
    """Join a session room; spectators get the current picture straight away."""
    code = ((data or {}).get('code') or '').upper()
    role = (data or {}).get('role') or 'spectator'
    if not code:
        emit('error', {'message': 'code is required'})
        return
    if role == 'host' and not current_app.config.get('LOGIN_DISABLED') and not current_user.is_authenticated:
        emit('error', {'message': 'Host login required'})
        return
    live = get_registry().get(code)
    if live is None:
        emit('error', {'message': f'Session {code} not found'})
        return
    room = room_for(code)
    join_room(room)
    _sid_to_ctx[_get_sid()] = {'code': code, 'role': role}
    emit('joined', {'room': room, 'role': role})
    with live.lock:
        catch_up = live.broadcaster.replay()
    for message in catch_up:
        emit(message['type'], message)


def handle_leave_session(data):
    code = ((data or {}).get('code') or '').upper()
    if not code:
        emit('error', {'message': 'code is required'})
        return
    room = room_for(code)
    leave_room(room)
    _sid_to_ctx.pop(_get_sid(), None)
    emit('left', {'room': room})


def _host_session(data):
    ctx = _sid_to_ctx.get(_get_sid()) or {}
    code = ((data or {}).get('code') or ctx.get('code') or '').upper()
    if ctx.get('role') != 'host' or ctx.get('code') != code:
        emit('error', {'message': 'Join the session as host first'})
        return None
    live = get_registry().get(code)
    if live is None:
        emit('error', {'message': f'Session {code} not found'})
    return live


def handle_host_command(data):
    live = _host_session(data)
    if live is None:
        return
    command = (data or {}).get('command')
    try:
        applied = live.dispatch(command, (data or {}).get('args') or {})
    except CommandError as exc:
        emit('error', {'message': str(exc)})
        return
    from quizhost.services.quiz.scheduler import schedule_countdown
    schedule_countdown(current_app._get_current_object(), live.code)
    emit('command_result', {'command': command, 'applied': applied})


def handle_video(data):
    live = _host_session(data)
    if live is None:
        return
    action = (data or {}).get('action')
    if action not in MEDIA_ACTIONS:
        emit('error', {'message': f'Unknown media action {action!r}'})
        return
    try:
        live.broadcaster.send_media_command(action, (data or {}).get('time'))
    except (TypeError, ValueError):
        emit('error', {'message': 'time must be a number'})


def handle_end_session(data):
    live = _host_session(data)
    if live is None:
        return
    from quizhost.api.sessions import end_live_session
    end_live_session(live.code)


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from quizhost import socketio

    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_session': handle_join_session,
        'leave_session': handle_leave_session,
        'host_command': handle_host_command,
        'video': handle_video,
        'end_session': handle_end_session,
        'ping': handle_ping,
    }
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
