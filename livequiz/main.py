from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from livequiz import db
from livequiz.models import Account

main = Blueprint('main', __name__)

LEADERBOARD_DEFAULT_LIMIT = 10
LEADERBOARD_MAX_LIMIT = 100


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the LiveQuiz game server!'})


@main.route('/me')
@login_required
def me():
    return jsonify(current_user.to_dict())


@main.route('/api/leaderboard')
def global_leaderboard():
    """Accounts with the most lifetime points, best first."""
    limit = request.args.get('limit', LEADERBOARD_DEFAULT_LIMIT, type=int)
    limit = max(1, min(limit, LEADERBOARD_MAX_LIMIT))
    accounts = db.session.execute(
        db.select(Account).order_by(Account.total_points.desc(), Account.id).limit(limit)
    ).scalars().all()
    entries = []
    for rank, account in enumerate(accounts, start=1):
        entry = account.to_dict()
        entry['rank'] = rank
        entries.append(entry)
    return jsonify({'entries': entries})
