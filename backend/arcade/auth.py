"""Wallet login and credential resolution.

A wallet address is the whole identity: the first login creates the user
row with zeroed counters, later logins resolve to the same row. Clients
authenticate with the Flask-Login session cookie or a signed bearer token.
"""
from flask import current_app
from itsdangerous import BadSignature, URLSafeTimedSerializer
from sqlalchemy.exc import IntegrityError

from arcade import db
from arcade.errors import InvalidInput, Unauthorized
from arcade.models import User, UserGameStat, game_types

TOKEN_SALT = 'arcade-auth'
MAX_WALLET_LENGTH = 128


def _serializer():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)


def issue_token(user):
    return _serializer().dumps({'uid': user.id, 'wallet': user.wallet_address})


def user_from_token(token):
    """Return the user a bearer token belongs to, or None."""
    if not token:
        return None
    max_age = current_app.config.get('AUTH_TOKEN_MAX_AGE_SEC')
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except BadSignature:
        return None
    user = db.session.get(User, payload.get('uid'))
    if user is None or user.wallet_address != payload.get('wallet'):
        return None
    return user


def normalize_wallet_address(value):
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput('walletAddress is required')
    address = value.strip()
    if len(address) > MAX_WALLET_LENGTH:
        raise InvalidInput('walletAddress is too long')
    return address


def get_or_create_user(wallet_address):
    """Resolve a wallet to its aggregate, creating it with zeroed counters."""
    address = normalize_wallet_address(wallet_address)
    user = User.query.filter_by(wallet_address=address).first()
    if user:
        return user, False

    user = User(wallet_address=address, total_points=0, minted_points=0)
    for game_type in game_types():
        user.game_stats.append(UserGameStat(game_type=game_type, high_score=0, games_played=0))
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent first login for the same wallet
        db.session.rollback()
        return User.query.filter_by(wallet_address=address).first(), False
    current_app.logger.info(f"[user-created] user={user.id} wallet={address}")
    return user, True


def _bearer_token(req):
    header = req.headers.get('Authorization', '')
    if header.lower().startswith('bearer '):
        return header[7:].strip()
    return None


def register_login_loaders(login_manager):
    @login_manager.user_loader
    def load_user(user_id):
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.request_loader
    def load_user_from_request(req):
        return user_from_token(_bearer_token(req))

    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthorized()
