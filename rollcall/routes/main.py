from flask import Blueprint, request, jsonify
from rollcall.exceptions import AuthError
from rollcall.services.identity import get_identity

main_bp = Blueprint('main', __name__)


def request_data():
    """Submitted fields from either a JSON body or a form post."""
    data = request.get_json(silent=True)
    if data is None:
        return request.form
    return data if isinstance(data, dict) else {}


@main_bp.route('/health')
def health():
    """Health check endpoint for Railway."""
    return {'status': 'healthy', 'app': 'Rollcall'}


@main_bp.route('/login', methods=['POST'])
def login():
    """Admin sign-in with email and password."""
    data = request_data()
    try:
        user = get_identity().sign_in(data.get('username', ''), data.get('password', ''))
    except AuthError as e:
        return jsonify({'success': False, 'code': e.code, 'error': e.message}), 401
    return jsonify({'success': True, 'user': user})


@main_bp.route('/logout', methods=['POST'])
def logout():
    """Log out admin."""
    get_identity().sign_out()
    return jsonify({'success': True})
