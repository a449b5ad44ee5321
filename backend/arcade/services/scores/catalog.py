from arcade.errors import InvalidInput
from arcade.models import game_types

# Largest value an Integer column holds on every supported backend
MAX_INT = 2**31 - 1


def validate_game_type(game_type):
    if not isinstance(game_type, str) or game_type not in game_types():
        raise InvalidInput('Invalid game type')
    return game_type


def _non_negative_int(value, field):
    # bool is an int subclass; a JSON true is not a score
    if value is None or isinstance(value, bool):
        raise InvalidInput(f'{field} is required')
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidInput(f'{field} must be a whole number')
        value = int(value)
    if not isinstance(value, int):
        raise InvalidInput(f'{field} must be a number')
    if value < 0:
        raise InvalidInput(f'{field} must not be negative')
    if value > MAX_INT:
        raise InvalidInput(f'{field} must be at most {MAX_INT}')
    return value


def validate_submission(data):
    """Check a raw submission payload and return its normalized fields."""
    if not isinstance(data, dict):
        raise InvalidInput('Game type, score, and points are required')
    if data.get('gameType') is None or data.get('score') is None or data.get('points') is None:
        raise InvalidInput('Game type, score, and points are required')

    game_type = validate_game_type(data.get('gameType'))
    score = _non_negative_int(data.get('score'), 'score')
    points = _non_negative_int(data.get('points'), 'points')

    # Falsy payloads (null, false, "", []) mean no game data
    game_data = data.get('gameData') or {}
    if not isinstance(game_data, dict):
        raise InvalidInput('gameData must be an object')

    idempotency_key = data.get('idempotencyKey')
    if idempotency_key is not None:
        if not isinstance(idempotency_key, str) or not idempotency_key.strip() or len(idempotency_key) > 128:
            raise InvalidInput('idempotencyKey must be a short non-empty string')
        idempotency_key = idempotency_key.strip()

    return {
        'game_type': game_type,
        'score': score,
        'points': points,
        'game_data': game_data,
        'idempotency_key': idempotency_key,
    }


def parse_page_args(args, default_limit, max_limit):
    """Read ``page`` and ``limit`` query parameters."""
    try:
        page = int(args.get('page', 1))
        limit = int(args.get('limit', default_limit))
    except (TypeError, ValueError):
        raise InvalidInput('page and limit must be integers')
    if page < 1:
        raise InvalidInput('page must be at least 1')
    if limit < 1 or limit > max_limit:
        raise InvalidInput(f'limit must be between 1 and {max_limit}')
    if page > MAX_INT // limit:
        raise InvalidInput('page is out of range')
    return page, limit
