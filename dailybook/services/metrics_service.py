"""
Aggregate Metrics Calculator - summary cards for transaction lists
"""
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from decimal import Decimal

from dailybook.core.formatting import to_decimal, quantize_money
from dailybook.schemas import (
    Metrics, ModeOfPayment, ModeStat, TransactionRecord, TransactionStats, TransactionType, TypeStat
)

ZERO = Decimal("0.00")


def is_paid(remaining_payment) -> bool:
    """Missing, zero or negative remaining counts as fully paid"""
    remaining = to_decimal(remaining_payment, default=None)
    return remaining is None or remaining <= 0


def _append_distinct(seen: List[str], value: Optional[str]):
    if value and value not in seen:
        seen.append(value)


def compute_metrics(transactions: Iterable[TransactionRecord]) -> Metrics:
    total_count = paid_count = unpaid_count = 0
    total_amount = paid_amount = unpaid_amount = ZERO
    counterparties: List[str] = []
    line_items: List[str] = []
    descriptions: List[str] = []

    for tx in transactions:
        total_count += 1
        total = to_decimal(tx.total_amount)
        paid = to_decimal(tx.paid_amount)
        remaining = to_decimal(tx.remaining_payment)

        total_amount += total
        paid_amount += max(ZERO, paid - remaining)
        unpaid_amount += max(ZERO, remaining)

        if is_paid(tx.remaining_payment):
            paid_count += 1
        else:
            unpaid_count += 1

        _append_distinct(counterparties, tx.counterparty_name)
        for name in tx.product_names:
            _append_distinct(line_items, name)
        _append_distinct(descriptions, (tx.description or "").strip())

    return Metrics(
        total_count=total_count,
        total_amount=quantize_money(total_amount),
        paid_count=paid_count,
        unpaid_count=unpaid_count,
        paid_amount=quantize_money(paid_amount),
        unpaid_amount=quantize_money(unpaid_amount),
        counterparties=counterparties,
        line_items=line_items,
        descriptions=descriptions,
    )


def preview_names(names: Sequence[str], limit: int = 3) -> Tuple[List[str], int]:
    """First `limit` names and how many are left for the "+N more" label"""
    names = list(names)
    return names[:limit], max(0, len(names) - limit)


def compute_stats(transactions: Iterable[TransactionRecord]) -> TransactionStats:
    """Totals plus per-type and per-mode breakdowns over paid amounts"""
    amounts: List[Decimal] = []
    by_type: Dict[TransactionType, List[Decimal]] = {}
    by_mode: Dict[Optional[ModeOfPayment], List[Decimal]] = {}

    for tx in transactions:
        amount = to_decimal(tx.paid_amount)
        amounts.append(amount)
        by_type.setdefault(tx.type, []).append(amount)
        by_mode.setdefault(tx.mode_of_payment, []).append(amount)

    if not amounts:
        return TransactionStats()

    total = sum(amounts, ZERO)
    return TransactionStats(
        total_transactions=len(amounts),
        total_amount=quantize_money(total),
        average_amount=quantize_money(total / len(amounts)),
        max_amount=quantize_money(max(amounts)),
        min_amount=quantize_money(min(amounts)),
        type_stats=[
            TypeStat(type=tx_type, count=len(values), total_amount=quantize_money(sum(values, ZERO)))
            for tx_type, values in by_type.items()
        ],
        mode_stats=[
            ModeStat(mode_of_payment=mode, count=len(values), total_amount=quantize_money(sum(values, ZERO)))
            for mode, values in by_mode.items()
        ],
    )
