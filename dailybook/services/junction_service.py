"""
Junction Service - many-to-many associations (vendor/purchaser products, purchaser vendors)

The backend exposes one row per pair and no batch endpoint, so a sync is a
series of independent calls. Nothing is rolled back when some of them fail;
the caller gets a BatchResult describing exactly what was applied.
"""
from typing import Dict, Iterable, List, NamedTuple, Optional
import logging

from dailybook.api_client import BackendClient
from dailybook.core.cache import Mutation, ReadModelCache
from dailybook.core.exceptions import DuplicateRelationship, NetworkFailure, PartialBatchFailure
from dailybook.schemas import BatchResult, JunctionAction, JunctionFailure, JunctionPair

logger = logging.getLogger(__name__)


class JunctionKind(NamedTuple):
    owner_field: str
    owner_path: str
    related_field: str
    related_path: str
    mutation: str


JUNCTION_KINDS: Dict[str, JunctionKind] = {
    "account-payable-products": JunctionKind(
        "account_payable_id", "account-payable", "product_id", "product",
        Mutation.ACCOUNT_PAYABLE_PRODUCTS_CHANGED,
    ),
    "purchaser-products": JunctionKind(
        "purchaser_id", "purchaser", "product_id", "product",
        Mutation.PURCHASER_PRODUCTS_CHANGED,
    ),
    "purchaser-account-payables": JunctionKind(
        "purchaser_id", "purchaser", "account_payable_id", "account-payable",
        Mutation.PURCHASER_ACCOUNT_PAYABLES_CHANGED,
    ),
}


def is_duplicate_conflict(error: NetworkFailure) -> bool:
    """Backend reports an existing row as 409 or a duplicate/unique violation"""
    if error.status_code == 409:
        return True
    message = (error.message or "").lower()
    return "duplicate" in message or "unique" in message


def _kind(kind: str) -> JunctionKind:
    try:
        return JUNCTION_KINDS[kind]
    except KeyError:
        raise ValueError(f"Unknown junction kind: {kind}")


class JunctionService:
    def __init__(self, client: BackendClient, cache: Optional[ReadModelCache] = None):
        self.client = client
        self.cache = cache

    def current_ids(self, kind: str, owner_id: str) -> List[str]:
        entry = _kind(kind)
        rows = self.client.list_junction(kind, entry.owner_path, owner_id)
        ids = []
        for row in rows:
            related = row.get(entry.related_field) if isinstance(row, dict) else row
            if related is None and isinstance(row, dict):
                related = row.get("id")
            if related is not None and str(related) not in ids:
                ids.append(str(related))
        return ids

    def plan(self, kind: str, owner_id: str, desired_ids: Iterable[str],
             current_ids: Optional[Iterable[str]] = None) -> List[JunctionPair]:
        """Pairs to add and remove to go from the current set to the desired one"""
        _kind(kind)
        desired = [str(i) for i in dict.fromkeys(desired_ids)]
        current = [str(i) for i in (current_ids if current_ids is not None else self.current_ids(kind, owner_id))]
        pairs = [
            JunctionPair(kind=kind, owner_id=str(owner_id), related_id=i, action=JunctionAction.REMOVE)
            for i in current if i not in desired
        ]
        pairs += [
            JunctionPair(kind=kind, owner_id=str(owner_id), related_id=i, action=JunctionAction.ADD)
            for i in desired if i not in current
        ]
        return pairs

    def apply(self, pair: JunctionPair) -> None:
        entry = _kind(pair.kind)
        if pair.action == JunctionAction.ADD:
            try:
                self.client.add_junction(pair.kind, {
                    entry.owner_field: pair.owner_id,
                    entry.related_field: pair.related_id,
                })
            except NetworkFailure as e:
                if is_duplicate_conflict(e):
                    raise DuplicateRelationship(e.message) from e
                raise
        else:
            self.client.remove_junction(
                pair.kind, entry.owner_path, pair.owner_id, entry.related_path, pair.related_id
            )

    def run(self, pairs: List[JunctionPair]) -> BatchResult:
        """Apply every pair independently and collect the outcome"""
        result = BatchResult(attempted=len(pairs))
        for pair in pairs:
            try:
                self.apply(pair)
                result.succeeded += 1
            except DuplicateRelationship:
                logger.info(f"{pair.kind}: {pair.owner_id} -> {pair.related_id} already exists")
                result.succeeded += 1
                result.duplicates += 1
            except NetworkFailure as e:
                logger.error(f"{pair.kind}: {pair.action.value} {pair.owner_id} -> {pair.related_id} failed: {e.message}")
                result.failed.append(JunctionFailure(pair=pair, message=e.message, status_code=e.status_code))
        return result

    def sync(self, kind: str, owner_id: str, desired_ids: Iterable[str]) -> BatchResult:
        pairs = self.plan(kind, owner_id, desired_ids)
        result = self.run(pairs)

        if result.succeeded and self.cache is not None:
            self.cache.publish(_kind(kind).mutation)

        if result.failed:
            if result.succeeded:
                raise PartialBatchFailure(result)
            first = result.failed[0]
            raise NetworkFailure(first.message, status_code=first.status_code)
        return result
