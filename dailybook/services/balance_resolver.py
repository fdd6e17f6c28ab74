"""
Entity Balance Resolver - Vendor/Client selection for payment and receipt flows
"""
from typing import Iterable, List, NamedTuple, Optional, Union
from decimal import Decimal
import logging

from dailybook.core.exceptions import EntityNotFound
from dailybook.core.formatting import to_decimal
from dailybook.schemas import (
    Classification, Client, CounterpartyEntity, EntityRole, FlowDirection, Vendor
)

logger = logging.getLogger(__name__)


class ResolvedEntity(NamedTuple):
    entity: CounterpartyEntity
    current_balance: Decimal
    classification: Classification


def coerce_balance(value) -> Decimal:
    """Balance from string or number; empty or invalid values count as 0"""
    return to_decimal(value)


def classify(entity: CounterpartyEntity) -> Classification:
    return entity.classification


def load_entities(payloads: Iterable[dict], role: Union[EntityRole, str]) -> List[CounterpartyEntity]:
    """Build tagged entities from an API list; the endpoint decides the role"""
    return [CounterpartyEntity.from_api(payload, role) for payload in payloads or []]


def eligible_entities(payables: Iterable[Vendor], receivables: Iterable[Client],
                      direction: Union[FlowDirection, str]) -> List[CounterpartyEntity]:
    """Entities that have something outstanding in the given direction.

    Payments go to vendors we owe (balance > 0) or clients we owe back
    (balance < 0). Receipts come from clients who owe us (balance > 0) or
    vendors we overpaid (balance < 0). Vendors are listed first for payments,
    clients first for receipts.
    """
    direction = FlowDirection(direction)
    vendors = list(payables or [])
    clients = list(receivables or [])

    if direction == FlowDirection.PAYMENT:
        return [v for v in vendors if v.balance > 0] + [c for c in clients if c.balance < 0]
    return [c for c in clients if c.balance > 0] + [v for v in vendors if v.balance < 0]


def resolve_entity(entities: Iterable[CounterpartyEntity], selected_id: Optional[str],
                   role: Union[EntityRole, str]) -> ResolvedEntity:
    """Find the selected counterparty among the candidates of one role"""
    role = EntityRole(role)
    if selected_id in (None, ""):
        raise EntityNotFound("Please select a vendor or client")

    selected_id = str(selected_id)
    for entity in entities:
        if entity.role == role and entity.id == selected_id:
            return ResolvedEntity(
                entity=entity,
                current_balance=coerce_balance(entity.balance),
                classification=classify(entity),
            )

    logger.warning(f"Counterparty {selected_id} ({role.value}) is not among the candidates")
    raise EntityNotFound()
