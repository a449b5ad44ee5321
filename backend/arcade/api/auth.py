from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from arcade.auth import get_or_create_user, issue_token

auth = Blueprint('auth', __name__)


@auth.route('/login', methods=['POST'])
def login():
    """
    Logs in with a wallet address, creating the user on first sight.
    """
    data = request.get_json(silent=True) or {}
    user, created = get_or_create_user(data.get('walletAddress'))
    login_user(user, remember=True)
    return jsonify({
        'message': 'Login successful',
        'token': issue_token(user),
        'user': user.to_dict(),
        'created': created,
    }), 201 if created else 200


@auth.route('/verify', methods=['GET'])
@login_required
def verify():
    return jsonify({'valid': True, 'user': current_user.to_dict()})


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})
