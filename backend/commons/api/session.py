from flask import Blueprint, jsonify

from commons.coordinator import get_coordinator

session_api = Blueprint('session', __name__)


@session_api.route('/state', methods=['GET'])
def get_session_state():
    """
    Returns the public view of the running session: phase, round counter,
    round outcomes and how many players and punishers there are.
    """
    return jsonify(get_coordinator().public_state())
