"""
Internal Operations Views - deposits, payroll, expenses and transfers
"""
from flask import Blueprint, jsonify

from dailybook.core.formatting import format_currency
from dailybook.schemas import TransactionType
from dailybook.web import get_submission_service, idempotency_key, login_required, request_data

bp = Blueprint('internal_operations', __name__, url_prefix='/internal-operations')

EXPENSE_ROUTES = {
    'fixed-utility': TransactionType.FIXED_UTILITY,
    'fixed-expense': TransactionType.FIXED_EXPENSE,
    'miscellaneous': TransactionType.MISCELLANEOUS,
}


def _options(data):
    return dict(
        date=data.get('date'),
        mode=data.get('mode_of_payment'),
        description=data.get('description'),
        idempotency_key=idempotency_key(data),
    )


@bp.route('/accounts')
@login_required
def list_accounts():
    """Active accounts with display balances"""
    accounts = get_submission_service().accounts()
    return jsonify([
        {
            **account.model_dump(mode='json'),
            'balance_display': format_currency(account.balance),
        }
        for account in accounts if account.is_active
    ])


@bp.route('/deposits', methods=['POST'])
@login_required
def create_deposit():
    data = request_data()
    record = get_submission_service().deposit(
        data.get('destination_account_id') or data.get('account_id'), data.get('amount'), **_options(data)
    )
    return jsonify(record.model_dump(mode='json')), 201


@bp.route('/payroll', methods=['POST'])
@login_required
def create_payroll():
    data = request_data()
    record = get_submission_service().payroll(
        data.get('source_account_id') or data.get('account_id'), data.get('amount'), **_options(data)
    )
    return jsonify(record.model_dump(mode='json')), 201


@bp.route('/expenses/<expense>', methods=['POST'])
@login_required
def create_expense(expense):
    expense_type = EXPENSE_ROUTES.get(expense)
    if expense_type is None:
        return jsonify({'error': f'Unknown expense type: {expense}'}), 404

    data = request_data()
    record = get_submission_service().expense(
        expense_type, data.get('source_account_id') or data.get('account_id'), data.get('amount'),
        **_options(data)
    )
    return jsonify(record.model_dump(mode='json')), 201


@bp.route('/transfers', methods=['POST'])
@login_required
def create_transfer():
    data = request_data()
    record = get_submission_service().transfer(
        data.get('source_account_id'), data.get('destination_account_id'), data.get('amount'),
        **_options(data)
    )
    return jsonify(record.model_dump(mode='json')), 201
