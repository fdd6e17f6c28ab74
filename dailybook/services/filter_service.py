"""
Filter Engine - client-side filtering of transaction and counterparty lists

Mirrors the query the backend applies for `FilterCriteria.to_query_params`,
so a list filtered here matches the same list filtered server-side.
"""
from typing import Iterable, List, Optional, TypeVar
from datetime import date, datetime

from dailybook.core.formatting import money_str
from dailybook.schemas import EntityRole, FilterCriteria, TransactionRecord
from dailybook.services.metrics_service import is_paid

T = TypeVar("T")


def has_active_filters(criteria: Optional[FilterCriteria]) -> bool:
    if criteria is None:
        return False
    # side and role only qualify account_id / counterparty_id
    values = criteria.model_dump(exclude={"account_side", "counterparty_role"})
    return any(value not in (None, [], "") for value in values.values())


def _calendar_date(item) -> Optional[date]:
    value = getattr(item, "date", None) or getattr(item, "created_at", None)
    if isinstance(value, datetime):
        return value.date()
    return value


def _search_haystack(item) -> List[str]:
    fields = [getattr(item, "id", None), getattr(item, "description", None), getattr(item, "name", None)]
    if isinstance(item, TransactionRecord):
        fields.append(item.counterparty_name)
        fields.append(item.source_account_name)
        fields.append(item.destination_account_name)
        fields.extend(item.product_names)
        for amount in (item.total_amount, item.paid_amount, item.remaining_payment):
            if amount is not None:
                fields.append(money_str(amount))
                fields.append(format(amount.normalize(), "f"))
    else:
        balance = getattr(item, "balance", None)
        if balance is not None:
            fields.append(money_str(balance))
    return [str(field).lower() for field in fields if field not in (None, "")]


def matches_search(item, search: Optional[str]) -> bool:
    if not search or not search.strip():
        return True
    needle = search.strip().lower()
    return any(needle in text for text in _search_haystack(item))


def matches_date_range(item, date_from: Optional[date], date_to: Optional[date]) -> bool:
    """Inclusive on both ends; `date_to` covers the whole day"""
    if date_from is None and date_to is None:
        return True
    day = _calendar_date(item)
    if day is None:
        return False
    if date_from is not None and day < date_from:
        return False
    if date_to is not None and day > date_to:
        return False
    return True


def matches_account(item, account_id: Optional[str], side: Optional[str] = None) -> bool:
    if not account_id:
        return True
    source = getattr(item, "source_account_id", None)
    destination = getattr(item, "destination_account_id", None)
    if side == "source":
        return source == account_id
    if side == "destination":
        return destination == account_id
    return account_id in (source, destination)


def matches_counterparty(item, counterparty_id: Optional[str], role: Optional[EntityRole] = None) -> bool:
    if not counterparty_id:
        return True
    if not isinstance(item, TransactionRecord):
        entity_role = getattr(item, "role", None)
        if role is not None and entity_role is not None and entity_role != role:
            return False
        return getattr(item, "id", None) == counterparty_id
    if role == EntityRole.PAYABLE:
        return item.account_payable_id == counterparty_id
    if role == EntityRole.RECEIVABLE:
        return item.account_receivable_id == counterparty_id
    return counterparty_id in (item.account_payable_id, item.account_receivable_id)


def matches(item, criteria: FilterCriteria) -> bool:
    if not matches_search(item, criteria.search):
        return False
    if not matches_date_range(item, criteria.date_from, criteria.date_to):
        return False
    if not matches_account(item, criteria.account_id, criteria.account_side):
        return False
    if not matches_counterparty(item, criteria.counterparty_id, criteria.counterparty_role):
        return False
    if criteria.payment_status is not None:
        paid = is_paid(getattr(item, "remaining_payment", None))
        if paid != (criteria.payment_status.value == "paid"):
            return False
    if criteria.mode_of_payment is not None:
        if getattr(item, "mode_of_payment", None) != criteria.mode_of_payment:
            return False
    if criteria.types:
        if getattr(item, "type", None) not in criteria.types:
            return False
    if criteria.product_id:
        if criteria.product_id not in (getattr(item, "product_ids", None) or []):
            return False
    return True


def apply_filters(items: Iterable[T], criteria: Optional[FilterCriteria]) -> List[T]:
    """AND of every active criterion; input order is preserved"""
    items = list(items)
    if criteria is None:
        return items
    return [item for item in items if matches(item, criteria)]
