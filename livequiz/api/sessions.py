from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user

from livequiz import sessions
from livequiz.errors import QuizError, ValidationError


sessions_bp = Blueprint('sessions', __name__)


@sessions_bp.app_errorhandler(QuizError)
def handle_quiz_error(exc: QuizError):
    if exc.silent:
        # Expected under jitter: late answers, double clicks
        current_app.logger.debug(f"[ignored] {exc.code}: {exc.message}")
        return jsonify({'ignored': True, 'reason': exc.code}), 202
    return jsonify(exc.to_dict()), exc.status_code


def _account_id():
    if current_user.is_authenticated:
        return current_user.id
    return None


def _payload():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def int_field(data, name, required=True):
    value = data.get(name)
    if value is None:
        if required:
            raise ValidationError(f'{name} is required')
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{name} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer')


@sessions_bp.route('', methods=['POST'])
def create_session():
    data = _payload()
    quiz_id = int_field(data, 'quiz_id')
    state = sessions.create_session(quiz_id, host_account_id=_account_id())
    return jsonify({
        'session_id': state.id,
        'host_token': state.host_token,
        'state': sessions.current_state(state.id),
    }), 201


@sessions_bp.route('/join', methods=['POST'])
def join_session():
    data = _payload()
    session_id = data.get('session_id')
    nickname = data.get('nickname')
    if not all([session_id, nickname]):
        raise ValidationError('Session PIN and nickname are required')
    player = sessions.join(str(session_id), nickname, data.get('avatar'), account_id=_account_id())
    return jsonify(player.to_dict()), 201


@sessions_bp.route('/<string:session_id>/state', methods=['GET'])
def get_session_state(session_id):
    player_id = request.args.get('player_id')
    return jsonify(sessions.current_state(session_id, player_id=player_id))


@sessions_bp.route('/<string:session_id>/leaderboard', methods=['GET'])
def get_leaderboard(session_id):
    entries = sessions.leaderboard(session_id)
    return jsonify({'session_id': session_id, 'entries': [e.to_dict() for e in entries]})


@sessions_bp.route('/<string:session_id>/start', methods=['POST'])
def start_session(session_id):
    data = _payload()
    return jsonify(sessions.start(session_id, data.get('host_token')))


@sessions_bp.route('/<string:session_id>/leaderboard', methods=['POST'])
def show_leaderboard(session_id):
    data = _payload()
    return jsonify(sessions.advance_after_reveal(session_id, data.get('host_token')))


@sessions_bp.route('/<string:session_id>/next', methods=['POST'])
def next_question(session_id):
    data = _payload()
    return jsonify(sessions.next_question(session_id, data.get('host_token')))


@sessions_bp.route('/<string:session_id>/abort', methods=['POST'])
def abort_session(session_id):
    data = _payload()
    return jsonify(sessions.abort(session_id, data.get('host_token')))


@sessions_bp.route('/<string:session_id>/answers', methods=['POST'])
def submit_answer(session_id):
    data = _payload()
    player_id = data.get('player_id')
    if not player_id:
        raise ValidationError('player_id is required')
    question_id = int_field(data, 'question_id')
    option_index = data.get('option_index')
    result = sessions.submit(session_id, player_id, question_id, option_index)
    return jsonify(result.to_dict()), (200 if result.duplicate else 201)


@sessions_bp.route('/<string:session_id>/modifiers', methods=['POST'])
def activate_modifier(session_id):
    data = _payload()
    player_id = data.get('player_id')
    kind = data.get('kind')
    if not all([player_id, kind]):
        raise ValidationError('player_id and kind are required')
    return jsonify(sessions.activate_modifier(session_id, player_id, kind))
