"""
Authentication Views
"""
from flask import Blueprint, request, session, jsonify

from dailybook.core.exceptions import NetworkFailure
from dailybook.web import get_client, drop_cache, request_data

bp = Blueprint('auth', __name__, url_prefix='/auth')


@bp.route('/login', methods=['GET', 'POST'])
def login():
    """Exchange credentials for backend tokens kept in the session"""
    if request.method == 'GET':
        return jsonify({'authenticated': 'access_token' in session})

    data = request_data()
    identifier = (data.get('identifier') or data.get('username') or '').strip()
    password = data.get('password') or ''
    if not identifier or not password:
        return jsonify({'error': 'Username and password are required'}), 400

    client = get_client()
    try:
        user = client.login(identifier, password)
    except NetworkFailure as e:
        return jsonify({'error': e.message or 'Login failed'}), 401

    if not client.access_token:
        return jsonify({'error': 'Login failed'}), 401

    session['access_token'] = client.access_token
    session['refresh_token'] = client.refresh_token
    session['username'] = identifier
    session['user_id'] = str(user['id']) if user.get('id') is not None else None
    return jsonify({'success': True, 'user': user})


@bp.route('/logout', methods=['POST'])
def logout():
    drop_cache()
    session.clear()
    return jsonify({'success': True})
