from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from arcade.services.scores.minting import mint_points

tokens = Blueprint('tokens', __name__)


@tokens.route('/mint', methods=['POST'])
@login_required
def mint():
    """
    Converts available points into token balance.
    """
    data = request.get_json(silent=True) or {}
    user = mint_points(current_user.id, data.get('points'))
    return jsonify({'message': 'Points minted successfully', 'user': user})
