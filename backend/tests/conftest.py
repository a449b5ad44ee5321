import os
import sys
import pytest

# Ensure the backend root (containing the `arcade` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from arcade import create_app, db, socketio
from arcade.realtime import registry


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    GAME_TYPES = ('snake', 'fallingFruit', 'breakBricks', 'carRacing')
    LEADERBOARD_PUSH_SIZE = 10
    SCORE_IDEMPOTENCY = 'none'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import arcade.models  # noqa: F401
        db.create_all()
    registry.clear()
    # No app context held here: each request pushes its own
    yield application
    registry.clear()
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def auth_headers(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture()
def login(flask_app):
    """Log a wallet in and return ``(headers, user)`` for bearer requests."""
    def _login(wallet_address):
        res = flask_app.test_client().post('/api/auth/login', json={'walletAddress': wallet_address})
        assert res.status_code in (200, 201)
        body = res.get_json()
        return auth_headers(body['token']), body['user']
    return _login


@pytest.fixture()
def submit(client):
    def _submit(headers, game_type, score, points, **extra):
        payload = {'gameType': game_type, 'score': score, 'points': points}
        payload.update(extra)
        return client.post('/api/scores/submit', json=payload, headers=headers)
    return _submit


@pytest.fixture()
def sio_factory(flask_app):
    """Build Socket.IO test clients on '/ws', optionally authenticated."""
    clients = []

    def _connect(token=None):
        kwargs = {'namespace': '/ws'}
        if token:
            kwargs['auth'] = {'token': token}
        test_client = socketio.test_client(flask_app, **kwargs)
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            test_client.disconnect(namespace='/ws')
        except Exception:
            pass


def token_from(headers):
    return headers['Authorization'].split(' ', 1)[1]


def events_named(received, name):
    return [pkt['args'][0] for pkt in received if pkt['name'] == name]
