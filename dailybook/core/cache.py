"""
Read-model cache with declared invalidation

Every mutation names the read models it makes stale in INVALIDATIONS.
Publishing a mutation drops those entries and notifies subscribers, so a
view re-fetches exactly what changed.
"""
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class ReadModel:
    """Names of the cached collections"""
    ACCOUNTS = "accounts"
    ACCOUNT_STATS = "accounts/stats"
    ACCOUNT_PAYABLES = "account_payables"
    ACCOUNT_RECEIVABLES = "account_receivables"
    TRANSACTIONS = "transactions"
    ACCOUNT_PAYABLE_PRODUCTS = "account_payable_products"
    PURCHASER_PRODUCTS = "purchaser_products"
    PURCHASER_ACCOUNT_PAYABLES = "purchaser_account_payables"


class Mutation:
    """Names of the writes that invalidate read models"""
    PAYMENT_CREATED = "payment_created"
    RECEIPT_CREATED = "receipt_created"
    ADVANCE_CREATED = "advance_created"
    INTERNAL_OPERATION_CREATED = "internal_operation_created"
    TRANSFER_CREATED = "transfer_created"
    TRANSACTION_DELETED = "transaction_deleted"
    ACCOUNT_PAYABLE_PRODUCTS_CHANGED = "account_payable_products_changed"
    PURCHASER_PRODUCTS_CHANGED = "purchaser_products_changed"
    PURCHASER_ACCOUNT_PAYABLES_CHANGED = "purchaser_account_payables_changed"


_COUNTERPARTY_MONEY = (
    ReadModel.TRANSACTIONS,
    ReadModel.ACCOUNTS,
    ReadModel.ACCOUNT_PAYABLES,
    ReadModel.ACCOUNT_RECEIVABLES,
)

INVALIDATIONS: Dict[str, Tuple[str, ...]] = {
    Mutation.PAYMENT_CREATED: _COUNTERPARTY_MONEY,
    Mutation.RECEIPT_CREATED: _COUNTERPARTY_MONEY,
    Mutation.ADVANCE_CREATED: _COUNTERPARTY_MONEY,
    Mutation.TRANSACTION_DELETED: _COUNTERPARTY_MONEY + (ReadModel.ACCOUNT_STATS,),
    Mutation.INTERNAL_OPERATION_CREATED: (
        ReadModel.TRANSACTIONS,
        ReadModel.ACCOUNTS,
        ReadModel.ACCOUNT_STATS,
    ),
    Mutation.TRANSFER_CREATED: (
        ReadModel.TRANSACTIONS,
        ReadModel.ACCOUNTS,
        ReadModel.ACCOUNT_STATS,
    ),
    Mutation.ACCOUNT_PAYABLE_PRODUCTS_CHANGED: (
        ReadModel.ACCOUNT_PAYABLES,
        ReadModel.ACCOUNT_PAYABLE_PRODUCTS,
    ),
    Mutation.PURCHASER_PRODUCTS_CHANGED: (
        ReadModel.PURCHASER_PRODUCTS,
    ),
    Mutation.PURCHASER_ACCOUNT_PAYABLES_CHANGED: (
        ReadModel.ACCOUNT_PAYABLES,
        ReadModel.PURCHASER_ACCOUNT_PAYABLES,
    ),
}


class ReadModelCache:
    """In-process cache of backend collections"""

    def __init__(self, invalidations: Optional[Dict[str, Tuple[str, ...]]] = None):
        self.invalidations = invalidations if invalidations is not None else INVALIDATIONS
        self._entries: Dict[str, Any] = {}
        self._subscribers: Dict[str, List[Callable[[str], None]]] = {}

    def get(self, name: str, loader: Callable[[], Any]) -> Any:
        """Return the cached read model, loading it on a miss"""
        if name not in self._entries:
            logger.debug(f"Cache miss for {name}")
            self._entries[name] = loader()
        return self._entries[name]

    def peek(self, name: str) -> Any:
        return self._entries.get(name)

    def contains(self, name: str) -> bool:
        return name in self._entries

    def invalidate(self, *names: str) -> None:
        for name in names:
            self._entries.pop(name, None)
            for callback in self._subscribers.get(name, []):
                callback(name)

    def clear(self) -> None:
        self.invalidate(*list(self._entries))

    def subscribe(self, name: str, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register a callback fired when `name` is invalidated.

        Returns a function that removes the subscription.
        """
        self._subscribers.setdefault(name, []).append(callback)

        def unsubscribe():
            callbacks = self._subscribers.get(name, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def publish(self, mutation: str) -> Tuple[str, ...]:
        """Invalidate every read model the mutation declares stale"""
        if mutation not in self.invalidations:
            raise KeyError(f"Unknown mutation: {mutation}")
        stale = self.invalidations[mutation]
        logger.info(f"{mutation}: invalidating {', '.join(stale)}")
        self.invalidate(*stale)
        return stale
