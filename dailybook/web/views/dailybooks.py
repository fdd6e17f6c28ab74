"""
Dailybook Views - payments, receipts, advances and transaction lists
"""
from flask import Blueprint, request, jsonify, send_file
from io import BytesIO

from dailybook.core.config import settings
from dailybook.core.exceptions import InvalidAmount
from dailybook.core.formatting import format_currency
from dailybook.schemas import EntityRole, FilterCriteria, FlowDirection
from dailybook.services.balance_resolver import resolve_entity
from dailybook.services.export_service import XLSX_MEDIA_TYPE, export_filename, export_transactions_xlsx
from dailybook.services.filter_service import apply_filters, has_active_filters
from dailybook.services.ledger_service import build_payable_ledger, build_receivable_ledger
from dailybook.services.metrics_service import compute_metrics, preview_names
from dailybook.services.transaction_builder import parse_amount, project_remaining
from dailybook.web import get_submission_service, idempotency_key, login_required, request_data

bp = Blueprint('dailybooks', __name__, url_prefix='/dailybooks')


def _entity_json(entity):
    return {
        'id': entity.id,
        'name': entity.name,
        'role': entity.role.value,
        'classification': entity.classification.value,
        'balance': f"{entity.balance:.2f}",
        'balance_display': format_currency(entity.balance),
    }


def _criteria_from_args() -> FilterCriteria:
    args = request.args.to_dict()
    args.pop('page', None)
    args.pop('limit', None)
    args.pop('local', None)
    return FilterCriteria.model_validate(args)


def _settle_args(data):
    return dict(
        date=data.get('date'),
        mode=data.get('mode_of_payment'),
        description=data.get('description'),
        idempotency_key=idempotency_key(data),
    )


@bp.route('/candidates')
@login_required
def candidates():
    """Vendors and clients selectable for a payment or a receipt"""
    direction = FlowDirection(request.args.get('direction', FlowDirection.PAYMENT.value))
    service = get_submission_service()
    return jsonify([_entity_json(e) for e in service.candidates(direction)])


@bp.route('/preview', methods=['POST'])
@login_required
def preview():
    """Balance before and after a payment/receipt, without posting anything"""
    data = request_data()
    direction = FlowDirection(data.get('direction', FlowDirection.PAYMENT.value))
    service = get_submission_service()
    resolved = resolve_entity(service.candidates(direction), data.get('entity_id'), data.get('role'))

    amount = data.get('amount')
    try:
        amount = parse_amount(amount) if amount not in (None, '') else 0
    except InvalidAmount:
        amount = 0
    remaining = project_remaining(resolved.classification, direction, resolved.current_balance, amount)

    return jsonify({
        'entity': _entity_json(resolved.entity),
        'current_balance': f"{resolved.current_balance:.2f}",
        'remaining_after': f"{remaining:.2f}",
        'remaining_after_display': format_currency(remaining),
    })


@bp.route('/payments', methods=['POST'])
@login_required
def create_payment():
    data = request_data()
    record = get_submission_service().pay(
        data.get('entity_id'), data.get('role'), data.get('amount'),
        data.get('source_account_id') or data.get('account_id'), **_settle_args(data)
    )
    return jsonify(record.model_dump(mode='json')), 201


@bp.route('/receipts', methods=['POST'])
@login_required
def create_receipt():
    data = request_data()
    record = get_submission_service().receive(
        data.get('entity_id'), data.get('role'), data.get('amount'),
        data.get('destination_account_id') or data.get('account_id'), **_settle_args(data)
    )
    return jsonify(record.model_dump(mode='json')), 201


@bp.route('/advances', methods=['POST'])
@login_required
def create_advance():
    """Advance from a client (receivable) or to a vendor (payable)"""
    data = request_data()
    role = data.get('role') or EntityRole.RECEIVABLE.value
    record = get_submission_service().advance(
        data.get('entity_id'), role, data.get('amount'), data.get('account_id'), **_settle_args(data)
    )
    return jsonify(record.model_dump(mode='json')), 201


def _load_transactions():
    criteria = _criteria_from_args()
    page = request.args.get('page', type=int)
    limit = request.args.get('limit', default=settings.DEFAULT_PAGE_SIZE, type=int)
    service = get_submission_service()

    if request.args.get('local'):
        # Filter the cached list in-process instead of asking the backend
        return criteria, apply_filters(service.transactions(), criteria)
    return criteria, service.transactions(criteria, page=page, limit=limit)


@bp.route('/transactions')
@login_required
def list_transactions():
    criteria, transactions = _load_transactions()
    metrics = compute_metrics(transactions)
    shown, hidden = preview_names(metrics.counterparties)

    return jsonify({
        'transactions': [t.model_dump(mode='json') for t in transactions],
        'metrics': metrics.model_dump(mode='json'),
        'counterparties_preview': {'shown': shown, 'more': hidden},
        'filtered': has_active_filters(criteria),
    })


@bp.route('/transactions/export')
@login_required
def export_transactions():
    _, transactions = _load_transactions()
    content = export_transactions_xlsx(transactions, title=request.args.get('title', 'Transactions'))
    return send_file(
        BytesIO(content),
        mimetype=XLSX_MEDIA_TYPE,
        as_attachment=True,
        download_name=export_filename('transactions'),
    )


@bp.route('/transactions/<transaction_id>', methods=['DELETE'])
@login_required
def delete_transaction(transaction_id):
    get_submission_service().delete_transaction(transaction_id)
    return jsonify({'success': True})


@bp.route('/ledger/<role>/<entity_id>')
@login_required
def ledger(role, entity_id):
    """Running-balance ledger of one vendor or client"""
    role = EntityRole(role)
    args = request.args.to_dict()
    opening_balance = args.pop('opening_balance', 0)
    criteria = FilterCriteria.model_validate({
        **args, 'counterparty_id': entity_id, 'counterparty_role': role.value,
    })
    transactions = get_submission_service().transactions(criteria)

    build = build_payable_ledger if role == EntityRole.PAYABLE else build_receivable_ledger
    rows = build(opening_balance, transactions)
    return jsonify([
        {
            'transaction': row.transaction.model_dump(mode='json'),
            'debit': f"{row.debit:.2f}",
            'credit': f"{row.credit:.2f}",
            'balance': f"{row.balance:.2f}",
        }
        for row in rows
    ])
