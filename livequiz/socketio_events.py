import secrets

from flask_socketio import join_room, leave_room, emit
from flask import current_app

from livequiz import socketio, sessions
from livequiz.api.sessions import int_field
from livequiz.errors import QuizError
from livequiz.services.games.notifier import NAMESPACE, host_room, session_room


def _report(exc: QuizError) -> None:
    # Silent errors (late or duplicate requests) have no visible effect
    if exc.silent:
        current_app.logger.debug(f"[ws-ignored] {exc.code}: {exc.message}")
        return
    emit('error', exc.to_dict())


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_join_session(data):
    data = data or {}
    session_id = data.get('session_id')
    if not session_id:
        emit('error', {'error': 'validation_error', 'message': 'session_id is required'})
        return
    session_id = str(session_id)
    role = data.get('role') or 'player'
    player_id = data.get('player_id')
    try:
        if role == 'host':
            # Host view subscribes to joins and answer submissions
            state = sessions.get(session_id)
            if not secrets.compare_digest(str(data.get('host_token') or '').encode(), state.host_token.encode()):
                emit('error', {'error': 'not_session_host', 'message': 'Only the host may join as host'})
                return
            join_room(host_room(session_id))
        view = sessions.current_state(session_id, player_id=player_id if role == 'player' else None)
    except QuizError as exc:
        _report(exc)
        return
    join_room(session_room(session_id))
    emit('joined', {'room': session_room(session_id), 'role': role})
    emit('state', view)


def handle_leave_session(data):
    session_id = (data or {}).get('session_id')
    if not session_id:
        emit('error', {'error': 'validation_error', 'message': 'session_id is required'})
        return
    session_id = str(session_id)
    leave_room(session_room(session_id))
    leave_room(host_room(session_id))
    emit('left', {'room': session_room(session_id)})


def handle_sync(data):
    data = data or {}
    try:
        view = sessions.current_state(str(data.get('session_id')), player_id=data.get('player_id'))
    except QuizError as exc:
        _report(exc)
        return
    emit('state', view)


def handle_submit_answer(data):
    data = data or {}
    try:
        result = sessions.submit(
            str(data.get('session_id')),
            data.get('player_id'),
            int_field(data, 'question_id'),
            data.get('option_index'),
        )
    except QuizError as exc:
        _report(exc)
        return
    emit('answer_result', result.to_dict())


def handle_activate_modifier(data):
    data = data or {}
    try:
        hint = sessions.activate_modifier(str(data.get('session_id')), data.get('player_id'), data.get('kind'))
    except QuizError as exc:
        _report(exc)
        return
    emit('modifier_activated', hint)


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'join_session': handle_join_session,
        'leave_session': handle_leave_session,
        'sync': handle_sync,
        'submit_answer': handle_submit_answer,
        'activate_modifier': handle_activate_modifier,
        'ping': handle_ping,
    }
    for event, handler in handlers.items():
        socketio.on_event(event, handler, namespace=NAMESPACE)
    if testing:
        # Test-only mirror on default namespace
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace='/')
