"""
Counterparty ledger - debit/credit rows with a running balance

Payable (vendor) ledgers: credit raises what we owe, debit lowers it.
Receivable (client) ledgers: debit raises what the client owes, credit lowers it.
"""
from typing import Iterable, List, Optional, Tuple
from datetime import datetime, timezone
from decimal import Decimal

from dailybook.core.formatting import to_decimal, quantize_money
from dailybook.schemas import LedgerRow, TransactionRecord, TransactionType

ZERO = Decimal("0.00")

PURCHASE_LIKE = (
    TransactionType.PURCHASE,
    TransactionType.ADVANCE_PURCHASE_INVENTORY,
    TransactionType.PAYABLE_ADVANCE,
)

SALE_LIKE = (
    TransactionType.SALE,
    TransactionType.RECEIVABLE_ADVANCE,
    TransactionType.ADVANCE_SALE_INVENTORY,
)


def _sort_instant(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.min
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def chronological(transactions: Iterable[TransactionRecord]) -> List[TransactionRecord]:
    """Oldest first by date, then by creation time within the same date"""
    return sorted(
        transactions,
        key=lambda tx: (_sort_instant(tx.date), _sort_instant(tx.created_at)),
    )


def payable_entry(tx: TransactionRecord) -> Tuple[Decimal, Decimal]:
    """(debit, credit) of a transaction on a vendor ledger"""
    total = to_decimal(tx.total_amount)
    paid = to_decimal(tx.paid_amount)

    if tx.type in PURCHASE_LIKE:
        return paid, total
    if tx.type in (TransactionType.ADVANCE_PURCHASE_PAYMENT, TransactionType.PAY_ABLE):
        return paid, ZERO
    if tx.type == TransactionType.RECEIVE_ABLE_VENDOR:
        return -paid, ZERO
    if tx.type == TransactionType.PURCHASE_RETURN:
        return -paid, -total
    if total > 0:
        return ZERO, total
    return abs(total), ZERO


def receivable_entry(tx: TransactionRecord) -> Tuple[Decimal, Decimal]:
    """(debit, credit) of a transaction on a client ledger"""
    total = to_decimal(tx.total_amount)
    paid = to_decimal(tx.paid_amount)

    if tx.type in SALE_LIKE:
        return total, paid
    if tx.type in (TransactionType.ADVANCE_SALE_PAYMENT, TransactionType.RECEIVE_ABLE):
        return ZERO, paid
    if tx.type == TransactionType.PAY_ABLE_CLIENT:
        return paid, ZERO
    if tx.type == TransactionType.SALE_RETURN:
        return -total, -paid
    if total > 0:
        return total, ZERO
    return ZERO, abs(total)


def build_payable_ledger(opening_balance, transactions: Iterable[TransactionRecord]) -> List[LedgerRow]:
    running = to_decimal(opening_balance)
    rows = []
    for tx in chronological(transactions):
        debit, credit = payable_entry(tx)
        running = running + credit - debit
        rows.append(LedgerRow(
            transaction=tx,
            debit=quantize_money(debit),
            credit=quantize_money(credit),
            balance=quantize_money(running),
        ))
    return rows


def build_receivable_ledger(opening_balance, transactions: Iterable[TransactionRecord]) -> List[LedgerRow]:
    running = to_decimal(opening_balance)
    rows = []
    for tx in chronological(transactions):
        debit, credit = receivable_entry(tx)
        running = running + debit - credit
        rows.append(LedgerRow(
            transaction=tx,
            debit=quantize_money(debit),
            credit=quantize_money(credit),
            balance=quantize_money(running),
        ))
    return rows
