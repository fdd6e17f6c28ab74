"""
Association Views - product and vendor links of vendors and purchasers
"""
from flask import Blueprint, jsonify

from dailybook.services.junction_service import JUNCTION_KINDS
from dailybook.web import get_junction_service, login_required, request_data

bp = Blueprint('associations', __name__, url_prefix='/associations')


@bp.route('/<kind>/<owner_id>')
@login_required
def current(kind, owner_id):
    if kind not in JUNCTION_KINDS:
        return jsonify({'error': f'Unknown association: {kind}'}), 404
    return jsonify({'ids': get_junction_service().current_ids(kind, owner_id)})


@bp.route('/<kind>/<owner_id>', methods=['PUT'])
@login_required
def sync(kind, owner_id):
    """Replace the linked ids of one owner with the posted list"""
    if kind not in JUNCTION_KINDS:
        return jsonify({'error': f'Unknown association: {kind}'}), 404

    data = request_data()
    ids = data.get('ids') or []
    if isinstance(ids, str):
        ids = [part for part in ids.split(',') if part.strip()]

    result = get_junction_service().sync(kind, owner_id, ids)
    return jsonify(result.model_dump(mode='json'))
