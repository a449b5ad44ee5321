from flask import jsonify, request
from werkzeug.exceptions import HTTPException


class ArcadeError(Exception):
    status_code = 500
    message = 'Server error'

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'message': self.message}


class InvalidInput(ArcadeError):
    status_code = 400
    message = 'Invalid input'


class Unauthorized(ArcadeError):
    status_code = 401
    message = 'Authentication required'


class NotFound(ArcadeError):
    status_code = 404
    message = 'Not found'


class InsufficientPoints(ArcadeError):
    status_code = 400
    message = 'Not enough available points'


class PersistenceError(ArcadeError):
    """The score ledger write failed; nothing else happened."""
    status_code = 500
    message = 'Could not record score'


class AggregateUpdateFailure(ArcadeError):
    """User totals could not be updated after the ledger write. Logged only."""


class FanOutFailure(ArcadeError):
    """A realtime publish failed. Logged only."""


def register_error_handlers(app):
    @app.errorhandler(ArcadeError)
    def handle_arcade_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({'message': exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        app.logger.error(f"[unhandled] path={request.path} error={exc!r}", exc_info=True)
        return jsonify({'message': 'Server error'}), 500
