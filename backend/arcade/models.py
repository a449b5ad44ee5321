from datetime import datetime, timezone

from arcade import db
from flask import current_app
from flask_login import UserMixin


def utcnow():
    return datetime.now(timezone.utc)


def isoformat(value):
    if value is None:
        return None
    if value.tzinfo is None:
        # sqlite hands back naive datetimes; everything is stored as UTC
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def game_types():
    return tuple(current_app.config['GAME_TYPES'])


class User(UserMixin, db.Model):
    """Cached per-user rollup of the score ledger."""
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    wallet_address = db.Column(db.String(128), unique=True, nullable=False, index=True)
    total_points = db.Column(db.BigInteger, nullable=False, default=0)
    minted_points = db.Column(db.BigInteger, nullable=False, default=0)
    last_played = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    game_stats = db.relationship('UserGameStat', back_populates='user', lazy='select',
                                 cascade='all, delete-orphan')

    __table_args__ = (
        db.CheckConstraint('minted_points <= total_points', name='ck_user_minted_le_total'),
    )

    @property
    def available_points(self):
        return max(0, (self.total_points or 0) - (self.minted_points or 0))

    @property
    def high_scores(self):
        values = {g: 0 for g in game_types()}
        for stat in self.game_stats:
            values[stat.game_type] = stat.high_score
        return values

    @property
    def games_played(self):
        values = {g: 0 for g in game_types()}
        for stat in self.game_stats:
            values[stat.game_type] = stat.games_played
        return values

    def to_dict(self):
        rate = current_app.config.get('ORACLE_POINT_RATE', 100) or 100
        return {
            'id': self.id,
            'walletAddress': self.wallet_address,
            'totalPoints': self.total_points,
            'mintedPoints': self.minted_points,
            'availablePoints': self.available_points,
            'mintedOracles': self.minted_points / rate,
            'highScores': self.high_scores,
            'gamesPlayed': self.games_played,
            'lastPlayed': isoformat(self.last_played),
        }


class UserGameStat(db.Model):
    """High score and play count for one (user, game type) pair."""
    __tablename__ = 'user_game_stat'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    game_type = db.Column(db.String(32), nullable=False)
    high_score = db.Column(db.Integer, nullable=False, default=0)
    games_played = db.Column(db.Integer, nullable=False, default=0)
    user = db.relationship('User', back_populates='game_stats')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'game_type', name='uq_user_game_stat_user_game'),
    )


class GameScore(db.Model):
    """One immutable play result. Rows are only ever inserted."""
    __tablename__ = 'game_score'
    id = db.Column(db.Integer, primary_key=True)
    # No FK constraint: a ledger row may exist without an aggregate row
    user_id = db.Column(db.Integer, nullable=False, index=True)
    # Copy of the owner's address at submission time
    wallet_address = db.Column(db.String(128), nullable=False, index=True)
    game_type = db.Column(db.String(32), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False)
    points = db.Column(db.Integer, nullable=False)
    game_data = db.Column(db.JSON, nullable=False, default=dict)
    idempotency_key = db.Column(db.String(128), nullable=True)
    played_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'idempotency_key', name='uq_game_score_user_idempotency_key'),
        db.Index('ix_game_score_game_type_score', 'game_type', 'score'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'walletAddress': self.wallet_address,
            'gameType': self.game_type,
            'score': self.score,
            'points': self.points,
            'gameData': self.game_data or {},
            'playedAt': isoformat(self.played_at),
        }
