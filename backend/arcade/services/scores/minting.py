from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from arcade import db
from arcade.errors import InsufficientPoints, InvalidInput, NotFound, PersistenceError
from arcade.models import User
from arcade.realtime import USER_UPDATED, private_channels, registry
from .catalog import MAX_INT


def mint_points(user_id, points):
    """Move ``points`` from the user's available balance into minted tokens.

    The balance check and the increment are one conditional UPDATE, so
    ``minted_points`` can never pass ``total_points``.
    """
    if isinstance(points, bool) or not isinstance(points, int) or not 0 < points <= MAX_INT:
        raise InvalidInput('points must be a positive whole number')

    try:
        updated = db.session.execute(
            update(User)
            .where(User.id == user_id, User.total_points - User.minted_points >= points)
            .values(minted_points=User.minted_points + points)
            .execution_options(synchronize_session=False)
        ).rowcount
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError('Could not mint points') from exc

    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('User not found')
    if not updated:
        raise InsufficientPoints()

    db.session.refresh(user)
    summary = user.to_dict()
    current_app.logger.info(f"[mint] user={user_id} points={points} minted={user.minted_points}")
    registry.publish_to_any(private_channels(user.id, user.wallet_address), USER_UPDATED, {'user': summary})
    return summary
