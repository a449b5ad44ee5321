"""Score submission pipeline.

validate -> append ledger row -> update user aggregate -> recompute views
-> publish -> respond.

Only validation, authentication and the ledger write can fail a
submission. Once the ledger row is committed everything downstream
degrades instead: a missing or failing aggregate update, a failed view
recompute and a failed publish are logged and the caller still gets the
recorded score back.
"""
from flask import current_app
from sqlalchemy import case, func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from arcade import db
from arcade.errors import AggregateUpdateFailure, NotFound, PersistenceError, Unauthorized
from arcade.models import GameScore, User, UserGameStat, game_types, utcnow
from arcade.realtime import (
    BROADCAST,
    GLOBAL_GAME_STATS_UPDATED,
    LEADERBOARD_UPDATED,
    SCORE_CREATED,
    SCORES_REFRESH_HINT,
    USER_UPDATED,
    private_channels,
    registry,
)
from .catalog import validate_submission
from .ranking import game_highscore_leaderboard, overall_leaderboard
from .stats import global_game_stats, user_game_stats

IDEMPOTENCY_NONE = 'none'
IDEMPOTENCY_CLIENT_KEY = 'client-key'


def _idempotency_enabled():
    return current_app.config.get('SCORE_IDEMPOTENCY', IDEMPOTENCY_NONE) == IDEMPOTENCY_CLIENT_KEY


def _find_existing(user_id, idempotency_key):
    return GameScore.query.filter_by(user_id=user_id, idempotency_key=idempotency_key).first()


def append_score_record(user_id, wallet_address, fields, played_at):
    """Insert one ledger row and commit it on its own."""
    record = GameScore(
        user_id=user_id,
        wallet_address=wallet_address,
        game_type=fields['game_type'],
        score=fields['score'],
        points=fields['points'],
        game_data=fields['game_data'],
        idempotency_key=fields['idempotency_key'],
        played_at=played_at,
    )
    db.session.add(record)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError() from exc
    return record


def apply_to_aggregate(user_id, game_type, score, points, played_at):
    """Fold one result into the user's cached totals.

    Both statements run in one transaction and do the arithmetic in SQL, so
    concurrent submissions by the same user cannot lose each other's
    increments. Returns False when the user has no aggregate row.
    """
    try:
        updated = db.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_points=User.total_points + points, last_played=played_at)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not updated:
            db.session.rollback()
            return False

        stat_update = (
            update(UserGameStat)
            .where(UserGameStat.user_id == user_id, UserGameStat.game_type == game_type)
            .values(
                games_played=UserGameStat.games_played + 1,
                high_score=case((UserGameStat.high_score < score, score), else_=UserGameStat.high_score),
            )
            .execution_options(synchronize_session=False)
        )
        if not db.session.execute(stat_update).rowcount:
            try:
                with db.session.begin_nested():
                    db.session.add(UserGameStat(user_id=user_id, game_type=game_type, high_score=score, games_played=1))
            except IntegrityError:
                # Another submission created the row first; only the savepoint is rolled back
                current_app.logger.info(f"[score-aggregate] user={user_id} game={game_type} stat row raced; retrying update")
                db.session.execute(stat_update)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise AggregateUpdateFailure(f"aggregate update failed for user {user_id}: {exc!r}") from exc
    return True


def _recompute(label, fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning(f"[score-views] view={label} recompute failed", exc_info=True)
        return None


def recompute_views(user_id, game_type):
    limit = int(current_app.config.get('LEADERBOARD_PUSH_SIZE', 50))
    overall = _recompute('overall', overall_leaderboard, 1, limit)
    per_game = _recompute(game_type, game_highscore_leaderboard, game_type, 1, limit)
    return {
        'userGameStats': _recompute('user-game-stats', user_game_stats, user_id),
        'globalGameStats': _recompute('global-game-stats', global_game_stats),
        'leaderboards': {
            'overall': overall['leaderboard'] if overall else None,
            game_type: per_game['leaderboard'] if per_game else None,
        },
    }


def publish_submission(user_id, wallet_address, record, user_summary, views):
    """Push one submission's results to the submitter and to every viewer."""
    game_type = record['gameType']
    private = private_channels(user_id, wallet_address)
    messages = []
    if user_summary is not None:
        messages.append((private, USER_UPDATED, {'user': user_summary, 'gameStats': views['userGameStats']}))
    messages.append((private, SCORES_REFRESH_HINT, {'gameType': game_type}))
    messages.append(((BROADCAST,), SCORE_CREATED, {'gameType': game_type, 'score': record}))
    for board_type, entries in views['leaderboards'].items():
        if entries is not None:
            messages.append(((BROADCAST,), LEADERBOARD_UPDATED, {'type': board_type, 'leaderboard': entries}))
    if views['globalGameStats'] is not None:
        messages.append(((BROADCAST,), GLOBAL_GAME_STATS_UPDATED, views['globalGameStats']))
    try:
        return registry.publish_many(messages)
    except Exception:
        current_app.logger.warning(f"[score-publish] record={record['id']} publish failed", exc_info=True)
        return 0


def _user_summary(user_id):
    user = db.session.get(User, user_id)
    return user.to_dict() if user else None


def submit_score(user_id, wallet_address, data):
    """Record one play result for an authenticated user.

    Returns ``{score, user, userGameStats, globalGameStats, leaderboards,
    replayed}``. ``user`` is None when the submitter has no aggregate row.
    """
    if user_id is None or not wallet_address:
        raise Unauthorized()
    fields = validate_submission(data)
    if not _idempotency_enabled():
        fields['idempotency_key'] = None

    if fields['idempotency_key']:
        existing = _find_existing(user_id, fields['idempotency_key'])
        if existing is not None:
            current_app.logger.info(
                f"[score-replay] user={user_id} key={fields['idempotency_key']} record={existing.id}"
            )
            return _replayed(user_id, existing)

    played_at = utcnow()
    try:
        record = append_score_record(user_id, wallet_address, fields, played_at)
    except PersistenceError as exc:
        existing = _find_existing(user_id, fields['idempotency_key']) if fields['idempotency_key'] else None
        if existing is not None and isinstance(exc.__cause__, IntegrityError):
            # Lost a race against a retry carrying the same key
            return _replayed(user_id, existing)
        current_app.logger.error(
            f"[score-submit] user={user_id} game={fields['game_type']} ledger write failed", exc_info=True
        )
        raise
    record_dict = record.to_dict()
    current_app.logger.info(
        f"[score-submit] user={user_id} game={fields['game_type']} score={fields['score']} "
        f"points={fields['points']} record={record.id}"
    )

    user_summary = None
    try:
        if apply_to_aggregate(user_id, fields['game_type'], fields['score'], fields['points'], played_at):
            user_summary = _user_summary(user_id)
        else:
            current_app.logger.warning(f"[score-aggregate] user={user_id} has no aggregate; totals not updated")
    except AggregateUpdateFailure as exc:
        current_app.logger.error(f"[score-aggregate] record={record_dict['id']} {exc.message}", exc_info=True)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.error(f"[score-aggregate] record={record_dict['id']} summary reload failed", exc_info=True)

    views = recompute_views(user_id, fields['game_type'])
    publish_submission(user_id, wallet_address, record_dict, user_summary, views)

    return {
        'score': record_dict,
        'user': user_summary,
        'userGameStats': views['userGameStats'],
        'globalGameStats': views['globalGameStats'],
        'leaderboards': views['leaderboards'],
        'replayed': False,
    }


def _replayed(user_id, record):
    """Response for a retried submission: nothing is re-applied or re-published."""
    return {
        'score': record.to_dict(),
        'user': _user_summary(user_id),
        'userGameStats': user_game_stats(user_id),
        'globalGameStats': global_game_stats(),
        'leaderboards': {},
        'replayed': True,
    }


def rebuild_user_aggregate(user_id):
    """Recompute a user's cached totals from the score ledger.

    ``total_points``, ``last_played`` and every per-game high score and play
    count are overwritten; ``minted_points`` is left alone. Raises
    ``NotFound`` when the user has no aggregate row.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('User not found')

    rows = (
        db.session.query(
            GameScore.game_type,
            func.count(GameScore.id),
            func.max(GameScore.score),
            func.sum(GameScore.points),
            func.max(GameScore.played_at),
        )
        .filter(GameScore.user_id == user_id)
        .group_by(GameScore.game_type)
        .all()
    )
    per_game = {row[0]: row for row in rows}

    total_points = sum(int(row[3] or 0) for row in rows)
    last_played = max((row[4] for row in rows if row[4] is not None), default=None)
    if total_points < (user.minted_points or 0):
        current_app.logger.warning(
            f"[aggregate-rebuild] user={user_id} ledger total {total_points} below minted {user.minted_points}; keeping minted"
        )
        total_points = user.minted_points

    stats = {stat.game_type: stat for stat in user.game_stats}
    for game_type in set(game_types()) | set(per_game):
        stat = stats.get(game_type)
        if stat is None:
            stat = UserGameStat(game_type=game_type)
            user.game_stats.append(stat)
        row = per_game.get(game_type)
        stat.games_played = int(row[1]) if row else 0
        stat.high_score = int(row[2] or 0) if row else 0

    user.total_points = total_points
    user.last_played = last_played
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise AggregateUpdateFailure(f"aggregate rebuild failed for user {user_id}: {exc!r}") from exc
    current_app.logger.info(f"[aggregate-rebuild] user={user_id} totalPoints={total_points}")
    return user.to_dict()
