"""Ranked, paginated leaderboard views.

Ranks are positional: ``offset + index + 1``. Entries with equal values get
consecutive ranks, ordered by row id (insertion order) so that a given
table state always pages the same way.
"""
import math

from sqlalchemy import func
from sqlalchemy.orm import selectinload

from arcade import db
from arcade.models import GameScore, User, isoformat
from .catalog import validate_game_type


def pagination(page, limit, total):
    return {
        'currentPage': page,
        'totalPages': math.ceil(total / limit) if limit else 0,
        'totalCount': total,
        'hasNextPage': page * limit < total,
        'hasPrevPage': page > 1,
    }


def _offset(page, limit):
    return (page - 1) * limit


def overall_leaderboard(page=1, limit=50):
    offset = _offset(page, limit)
    users = (
        User.query.options(selectinload(User.game_stats))
        .order_by(User.total_points.desc(), User.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    total = User.query.count()
    entries = []
    for index, user in enumerate(users):
        entries.append({
            'rank': offset + index + 1,
            'walletAddress': user.wallet_address,
            'totalPoints': user.total_points,
            'highScores': user.high_scores,
            'gamesPlayed': user.games_played,
        })
    return {'leaderboard': entries, 'pagination': pagination(page, limit, total)}


def game_leaderboard(game_type, page=1, limit=50):
    validate_game_type(game_type)
    offset = _offset(page, limit)
    query = GameScore.query.filter_by(game_type=game_type)
    records = (
        query.order_by(GameScore.score.desc(), GameScore.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    total = query.count()
    entries = []
    for index, record in enumerate(records):
        entries.append({
            'rank': offset + index + 1,
            'id': record.id,
            'walletAddress': record.wallet_address,
            'score': record.score,
            'points': record.points,
            'playedAt': isoformat(record.played_at),
        })
    return {'gameType': game_type, 'leaderboard': entries, 'pagination': pagination(page, limit, total)}


def game_highscore_leaderboard(game_type, page=1, limit=50):
    """Best result per wallet for one game."""
    validate_game_type(game_type)
    offset = _offset(page, limit)
    high_score = func.max(GameScore.score).label('high_score')
    grouped = (
        db.session.query(
            GameScore.wallet_address,
            high_score,
            func.sum(GameScore.points).label('total_points'),
            func.count(GameScore.id).label('games_played'),
            func.max(GameScore.played_at).label('last_played'),
            func.min(GameScore.id).label('first_id'),
        )
        .filter(GameScore.game_type == game_type)
        .group_by(GameScore.wallet_address)
        .order_by(high_score.desc(), func.min(GameScore.id).asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    total = (
        db.session.query(func.count(func.distinct(GameScore.wallet_address)))
        .filter(GameScore.game_type == game_type)
        .scalar()
    ) or 0
    entries = []
    for index, row in enumerate(grouped):
        entries.append({
            'rank': offset + index + 1,
            'walletAddress': row.wallet_address,
            'highScore': int(row.high_score or 0),
            'totalPoints': int(row.total_points or 0),
            'gamesPlayed': int(row.games_played),
            'lastPlayed': isoformat(row.last_played),
        })
    return {'gameType': game_type, 'leaderboard': entries, 'pagination': pagination(page, limit, total)}
