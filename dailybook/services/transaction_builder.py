"""
Transaction Builder - canonical records for payments, receipts, advances
and internal operations

Nothing here talks to the backend; the submission service posts what these
functions return.
"""
from typing import Optional, Union
from datetime import date, datetime
from decimal import Decimal
import uuid

from dailybook.core.exceptions import (
    EntityNotFound, InsufficientBalance, InvalidAmount, MissingAccount, SameAccountTransfer
)
from dailybook.core.formatting import format_currency, to_decimal, quantize_money
from dailybook.schemas import (
    Account, Classification, CounterpartyEntity, FlowDirection, ModeOfPayment,
    TransactionRecord, TransactionType, parse_datetime
)
from dailybook.services.balance_resolver import ResolvedEntity, coerce_balance

# (classification, direction) -> transaction type
SETTLEMENT_TYPES = {
    (Classification.VENDOR, FlowDirection.PAYMENT): TransactionType.PAY_ABLE,
    (Classification.CLIENT, FlowDirection.PAYMENT): TransactionType.PAY_ABLE_CLIENT,
    (Classification.CLIENT, FlowDirection.RECEIPT): TransactionType.RECEIVE_ABLE,
    (Classification.VENDOR, FlowDirection.RECEIPT): TransactionType.RECEIVE_ABLE_VENDOR,
}

# Flows that move the outstanding balance toward zero
NATURAL_SETTLEMENTS = {
    (Classification.VENDOR, FlowDirection.PAYMENT),
    (Classification.CLIENT, FlowDirection.RECEIPT),
}

ADVANCE_TYPES = {
    Classification.CLIENT: TransactionType.ADVANCE_SALE_PAYMENT,
    Classification.VENDOR: TransactionType.ADVANCE_PURCHASE_PAYMENT,
}

EXPENSE_TYPES = (
    TransactionType.FIXED_UTILITY,
    TransactionType.FIXED_EXPENSE,
    TransactionType.MISCELLANEOUS,
)

ZERO = Decimal("0.00")


# ==================== HELPERS ====================

def new_idempotency_key(key: Optional[str] = None) -> str:
    """Client-supplied key when there is one, otherwise a fresh one"""
    key = (key or "").strip()
    return key or uuid.uuid4().hex


def parse_amount(value) -> Decimal:
    """Positive amount rounded to cents, or InvalidAmount"""
    amount = to_decimal(value, default=None)
    if amount is None or amount <= 0:
        raise InvalidAmount()
    amount = quantize_money(amount)
    if amount <= 0:
        raise InvalidAmount()
    return amount


def _transaction_date(value) -> datetime:
    parsed = parse_datetime(value)
    if parsed is None:
        today = date.today()
        return datetime(today.year, today.month, today.day)
    return parsed


def _display_date(value: datetime) -> str:
    """Jan 5, 2025"""
    return f"{value:%b} {value.day}, {value.year}"


def _account_id(account: Union[Account, str, None]) -> Optional[str]:
    if isinstance(account, Account):
        return account.id
    if account in (None, ""):
        return None
    return str(account)


def settlement_account(account_id: Union[Account, str, None], direction: Union[FlowDirection, str]) -> str:
    """Account a payment leaves or a receipt lands in, or MissingAccount"""
    account = _account_id(account_id)
    if not account:
        raise MissingAccount(
            "Please select a source account" if FlowDirection(direction) == FlowDirection.PAYMENT
            else "Please select a destination account"
        )
    return account


def _mode(mode) -> Optional[ModeOfPayment]:
    if mode in (None, ""):
        return ModeOfPayment.CASH
    return ModeOfPayment(mode)


def _resolved(entity) -> ResolvedEntity:
    if entity is None:
        raise EntityNotFound()
    if isinstance(entity, ResolvedEntity):
        return entity
    if isinstance(entity, CounterpartyEntity):
        return ResolvedEntity(entity, coerce_balance(entity.balance), entity.classification)
    raise EntityNotFound()


def audit_note(entity: CounterpartyEntity, current_balance, direction: FlowDirection) -> str:
    return (
        f"Note: {entity.name} ({entity.role_label}) balance at time of "
        f"{direction.value} is: {format_currency(current_balance)}"
    )


def append_note(description: Optional[str], note: str) -> str:
    existing = (description or "").strip()
    return f"{existing}\n{note}" if existing else note


def project_remaining(classification: Union[Classification, str], direction: Union[FlowDirection, str],
                      current_balance, amount) -> Decimal:
    """Outstanding balance after moving `amount` in `direction`.

    Natural settlements (paying a vendor, receiving from a client) subtract;
    reversals (paying a client back, receiving from a vendor) add.
    """
    classification = Classification(classification)
    direction = FlowDirection(direction)
    balance = coerce_balance(current_balance)
    amount = to_decimal(amount)
    if amount < 0:
        raise InvalidAmount()
    if (classification, direction) in NATURAL_SETTLEMENTS:
        return quantize_money(balance - amount)
    return quantize_money(balance + amount)


# ==================== PAYMENTS & RECEIPTS ====================

def build_transaction(entity, amount, direction: Union[FlowDirection, str],
                      account_id: Union[Account, str, None], date=None,
                      mode: Union[ModeOfPayment, str, None] = None,
                      description: Optional[str] = None,
                      user_id: Optional[str] = None,
                      idempotency_key: Optional[str] = None) -> TransactionRecord:
    """Payment to / receipt from a counterparty against its current balance.

    total_amount is what was outstanding before, paid_amount what is settled
    now, remaining_payment what is left afterwards.
    """
    resolved = _resolved(entity)
    direction = FlowDirection(direction)
    account = settlement_account(account_id, direction)
    paid = parse_amount(amount)

    classification = resolved.classification
    remaining = project_remaining(classification, direction, resolved.current_balance, paid)
    note = audit_note(resolved.entity, resolved.current_balance, direction)

    return TransactionRecord(
        type=SETTLEMENT_TYPES[(classification, direction)],
        date=_transaction_date(date),
        total_amount=quantize_money(resolved.current_balance),
        paid_amount=paid,
        remaining_payment=remaining,
        source_account_id=account if direction == FlowDirection.PAYMENT else None,
        destination_account_id=account if direction == FlowDirection.RECEIPT else None,
        account_payable_id=resolved.entity.id if classification == Classification.VENDOR else None,
        account_receivable_id=resolved.entity.id if classification == Classification.CLIENT else None,
        mode_of_payment=_mode(mode),
        description=append_note(description, note),
        user_id=user_id,
        idempotency_key=new_idempotency_key(idempotency_key),
    )


def build_advance(entity: CounterpartyEntity, amount, account_id: Union[Account, str, None],
                  date=None, mode=None, description: Optional[str] = None,
                  user_id: Optional[str] = None,
                  idempotency_key: Optional[str] = None) -> TransactionRecord:
    """Advance from a client or to a vendor; nothing was owed, so it settles at once"""
    if not isinstance(entity, CounterpartyEntity):
        raise EntityNotFound()
    classification = entity.classification
    account = _account_id(account_id)
    if not account:
        raise MissingAccount(
            "Please select a destination account" if classification == Classification.CLIENT
            else "Please select a source account"
        )
    paid = parse_amount(amount)

    return TransactionRecord(
        type=ADVANCE_TYPES[classification],
        date=_transaction_date(date),
        total_amount=paid,
        paid_amount=paid,
        remaining_payment=ZERO,
        source_account_id=account if classification == Classification.VENDOR else None,
        destination_account_id=account if classification == Classification.CLIENT else None,
        account_payable_id=entity.id if classification == Classification.VENDOR else None,
        account_receivable_id=entity.id if classification == Classification.CLIENT else None,
        mode_of_payment=_mode(mode),
        description=(description or "").strip(),
        user_id=user_id,
        idempotency_key=new_idempotency_key(idempotency_key),
    )


# ==================== INTERNAL OPERATIONS ====================

def _require_account(account: Optional[Account], label: str) -> Account:
    if not isinstance(account, Account):
        raise MissingAccount(f"Please select a {label} account")
    return account


def _check_funds(account: Account, amount: Decimal):
    if amount > account.balance:
        raise InsufficientBalance(
            f"Transaction can't happen as selected account balance is low "
            f"(available {format_currency(account.balance)})"
        )


def _internal(tx_type: TransactionType, amount: Decimal, when: datetime, mode, description: str,
              user_id: Optional[str], source: Optional[Account] = None,
              destination: Optional[Account] = None,
              idempotency_key: Optional[str] = None) -> TransactionRecord:
    return TransactionRecord(
        type=tx_type,
        date=when,
        total_amount=amount,
        paid_amount=amount,
        remaining_payment=ZERO,
        source_account_id=source.id if source else None,
        destination_account_id=destination.id if destination else None,
        mode_of_payment=_mode(mode),
        description=description,
        user_id=user_id,
        idempotency_key=new_idempotency_key(idempotency_key),
    )


def build_deposit(account: Optional[Account], amount, date=None, mode=None,
                  description: Optional[str] = None, user_id: Optional[str] = None,
                  idempotency_key: Optional[str] = None) -> TransactionRecord:
    """Money into an internal account; no balance check needed"""
    account = _require_account(account, "destination")
    paid = parse_amount(amount)
    when = _transaction_date(date)
    text = (description or "").strip() or f"Deposit to {account.name} - {_display_date(when)}"
    return _internal(TransactionType.DEPOSIT, paid, when, mode, text, user_id, destination=account,
                     idempotency_key=idempotency_key)


def build_payroll(account: Optional[Account], amount, date=None, mode=None,
                  description: Optional[str] = None, user_id: Optional[str] = None,
                  idempotency_key: Optional[str] = None) -> TransactionRecord:
    account = _require_account(account, "source")
    paid = parse_amount(amount)
    _check_funds(account, paid)
    when = _transaction_date(date)
    text = (description or "").strip() or f"Payroll payment - {_display_date(when)}"
    return _internal(TransactionType.PAYROLL, paid, when, mode, text, user_id, source=account,
                     idempotency_key=idempotency_key)


def build_expense(expense_type: Union[TransactionType, str], account: Optional[Account], amount,
                  date=None, mode=None, description: Optional[str] = None,
                  user_id: Optional[str] = None,
                  idempotency_key: Optional[str] = None) -> TransactionRecord:
    """Fixed utility, fixed expense or miscellaneous spend from an account"""
    expense_type = TransactionType(expense_type)
    if expense_type not in EXPENSE_TYPES:
        raise ValueError(f"{expense_type.value} is not an expense type")
    account = _require_account(account, "source")
    paid = parse_amount(amount)
    _check_funds(account, paid)
    when = _transaction_date(date)
    label = expense_type.value.replace("_", " ").title()
    text = (description or "").strip() or f"{label} - {_display_date(when)}"
    return _internal(expense_type, paid, when, mode, text, user_id, source=account,
                     idempotency_key=idempotency_key)


def build_transfer(source: Optional[Account], destination: Optional[Account], amount, date=None,
                   mode=None, description: Optional[str] = None,
                   user_id: Optional[str] = None,
                   idempotency_key: Optional[str] = None) -> TransactionRecord:
    source = _require_account(source, "source")
    destination = _require_account(destination, "destination")
    if source.id == destination.id:
        raise SameAccountTransfer()
    paid = parse_amount(amount)
    _check_funds(source, paid)
    when = _transaction_date(date)
    text = (description or "").strip() or f"Transfer from {source.name} to {destination.name}"
    return _internal(TransactionType.TRANSFER, paid, when, mode, text, user_id,
                     source=source, destination=destination, idempotency_key=idempotency_key)
