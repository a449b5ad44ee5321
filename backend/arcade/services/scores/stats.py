from sqlalchemy import func

from arcade import db
from arcade.models import GameScore, game_types, isoformat


def empty_user_game_stats():
    return {'totalGames': 0, 'highScore': 0, 'totalPoints': 0, 'averageScore': 0.0}


def empty_global_game_stats():
    return {'highestScore': 0, 'walletAddress': None, 'points': 0, 'playedAt': None}


def user_game_stats(user_id):
    """Per-game totals for one user, computed from the score ledger.

    Every configured game type is present; games the user never played
    report zeros.
    """
    rows = (
        db.session.query(
            GameScore.game_type,
            func.count(GameScore.id),
            func.max(GameScore.score),
            func.sum(GameScore.points),
            func.sum(GameScore.score),
        )
        .filter(GameScore.user_id == user_id)
        .group_by(GameScore.game_type)
        .all()
    )
    by_game = {row[0]: row for row in rows}

    stats = {}
    for game_type in game_types():
        row = by_game.get(game_type)
        if row is None or not row[1]:
            stats[game_type] = empty_user_game_stats()
            continue
        _, count, high, points, score_sum = row
        stats[game_type] = {
            'totalGames': int(count),
            'highScore': int(high or 0),
            'totalPoints': int(points or 0),
            'averageScore': float(score_sum or 0) / count,
        }
    return stats


def top_score(game_type):
    return (
        GameScore.query.filter_by(game_type=game_type)
        .order_by(GameScore.score.desc(), GameScore.id.asc())
        .first()
    )


def global_game_stats():
    """Best single result for every game type."""
    stats = {}
    for game_type in game_types():
        best = top_score(game_type)
        if best is None:
            stats[game_type] = empty_global_game_stats()
        else:
            stats[game_type] = {
                'highestScore': best.score,
                'walletAddress': best.wallet_address,
                'points': best.points,
                'playedAt': isoformat(best.played_at),
            }
    return stats
