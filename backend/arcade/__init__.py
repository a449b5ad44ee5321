import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from arcade.errors import register_error_handlers
    register_error_handlers(flask_app)

    from arcade.auth import register_login_loaders
    register_login_loaders(login_manager)

    # Import and register blueprints here
    from arcade.api.auth import auth
    from arcade.api.scores import scores
    from arcade.api.leaderboard import leaderboard
    from arcade.api.tokens import tokens
    flask_app.register_blueprint(auth, url_prefix='/api/auth')
    flask_app.register_blueprint(scores, url_prefix='/api/scores')
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')
    flask_app.register_blueprint(tokens, url_prefix='/api/tokens')

    @flask_app.route('/api/health')
    def health():
        return {'message': 'Server is running!'}

    # Register Socket.IO event handlers on the initialized socketio instance
    from arcade.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('rebuild-aggregates')
    @click.option('--user-id', type=int, default=None, help='Rebuild a single user instead of everyone.')
    def rebuild_aggregates_command(user_id):
        """Recompute cached user totals from the score ledger."""
        from arcade.models import User
        from arcade.services.scores.submission import rebuild_user_aggregate
        with flask_app.app_context():
            user_ids = [user_id] if user_id is not None else [u.id for u in User.query.order_by(User.id).all()]
            for uid in user_ids:
                summary = rebuild_user_aggregate(uid)
                click.echo(f"user={uid} totalPoints={summary['totalPoints']}")
        click.echo(f'Rebuilt {len(user_ids)} aggregate(s).')

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates all tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
        click.echo('Database has been reset!')

    flask_app.cli.add_command(rebuild_aggregates_command)
    flask_app.cli.add_command(db_reset_command)

    return flask_app
