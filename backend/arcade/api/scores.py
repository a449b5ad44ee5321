from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from arcade.models import GameScore
from arcade.services.scores.catalog import parse_page_args, validate_game_type
from arcade.services.scores.ranking import pagination
from arcade.services.scores.stats import user_game_stats
from arcade.services.scores.submission import submit_score

scores = Blueprint('scores', __name__)


@scores.route('/submit', methods=['POST'])
@login_required
def submit():
    """
    Records a finished game for the current user and pushes the new
    standings to live clients.
    """
    data = request.get_json(silent=True)
    result = submit_score(current_user.id, current_user.wallet_address, data)
    user = result['user']
    return jsonify({
        'message': 'Score already recorded' if result['replayed'] else 'Score submitted successfully',
        'score': result['score'],
        'user': user,
        'newTotalPoints': user['totalPoints'] if user else None,
        'userGameStats': result['userGameStats'],
        'globalGameStats': result['globalGameStats'],
        'leaderboards': result['leaderboards'],
        'replayed': result['replayed'],
    })


@scores.route('/history', methods=['GET'])
@login_required
def history():
    """
    Returns the current user's results, newest first.
    """
    page, limit = parse_page_args(
        request.args,
        current_app.config.get('HISTORY_DEFAULT_PAGE_SIZE', 10),
        current_app.config.get('LEADERBOARD_MAX_PAGE_SIZE', 100),
    )
    query = GameScore.query.filter_by(user_id=current_user.id)
    game_type = request.args.get('gameType')
    if game_type:
        query = query.filter_by(game_type=validate_game_type(game_type))

    records = (
        query.order_by(GameScore.played_at.desc(), GameScore.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total = query.count()
    return jsonify({
        'scores': [r.to_dict() for r in records],
        'pagination': pagination(page, limit, total),
    })


@scores.route('/stats', methods=['GET'])
@login_required
def stats():
    """
    Returns the current user's totals and per-game statistics.
    """
    return jsonify({
        'user': current_user.to_dict(),
        'gameStats': user_game_stats(current_user.id),
    })
