from flask import Blueprint, current_app, jsonify, request

from arcade.services.scores.catalog import parse_page_args
from arcade.services.scores.ranking import (
    game_highscore_leaderboard,
    game_leaderboard,
    overall_leaderboard,
)
from arcade.services.scores.stats import global_game_stats

leaderboard = Blueprint('leaderboard', __name__)


def _page_args():
    cfg = current_app.config
    return parse_page_args(
        request.args,
        cfg.get('LEADERBOARD_DEFAULT_PAGE_SIZE', 50),
        cfg.get('LEADERBOARD_MAX_PAGE_SIZE', 100),
    )


@leaderboard.route('/overall', methods=['GET'])
def overall():
    page, limit = _page_args()
    return jsonify(overall_leaderboard(page, limit))


@leaderboard.route('/game/<string:game_type>', methods=['GET'])
def game(game_type):
    page, limit = _page_args()
    return jsonify(game_leaderboard(game_type, page, limit))


@leaderboard.route('/game/<string:game_type>/highscores', methods=['GET'])
def game_highscores(game_type):
    page, limit = _page_args()
    return jsonify(game_highscore_leaderboard(game_type, page, limit))


@leaderboard.route('/game-stats', methods=['GET'])
def game_stats():
    return jsonify({'gameStats': global_game_stats()})
