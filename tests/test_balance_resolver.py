"""
Counterparty loading, eligibility and resolution
"""
from decimal import Decimal

import pytest

from dailybook.core.exceptions import EntityNotFound
from dailybook.schemas import Classification, Client, EntityRole, FlowDirection, Vendor
from dailybook.services.balance_resolver import (
    coerce_balance, eligible_entities, load_entities, resolve_entity
)


class TestLoadEntities:

    def test_role_comes_from_endpoint(self, backend):
        vendors = load_entities(backend.payables, EntityRole.PAYABLE)
        clients = load_entities(backend.receivables, "receivable")

        assert all(isinstance(v, Vendor) for v in vendors)
        assert all(isinstance(c, Client) for c in clients)
        assert vendors[1].classification == Classification.VENDOR
        assert clients[1].classification == Classification.CLIENT

    def test_negative_balance_keeps_role(self, backend):
        overpaid = load_entities(backend.payables, EntityRole.PAYABLE)[1]

        assert overpaid.balance == Decimal("-750.50")
        assert overpaid.role == EntityRole.PAYABLE

    def test_ids_are_strings(self, backend):
        clients = load_entities(backend.receivables, EntityRole.RECEIVABLE)
        assert clients[0].id == "20"
        assert clients[0].balance == Decimal("5000")

    def test_empty_payload(self):
        assert load_entities(None, EntityRole.PAYABLE) == []


class TestCoerceBalance:

    @pytest.mark.parametrize("raw, expected", [
        ("5000", Decimal("5000")),
        (1250.5, Decimal("1250.5")),
        ("1,200.00", Decimal("1200.00")),
        ("", Decimal("0")),
        (None, Decimal("0")),
        ("abc", Decimal("0")),
    ])
    def test_values(self, raw, expected):
        assert coerce_balance(raw) == expected


class TestEligibleEntities:

    def test_payment_candidates(self, backend):
        vendors = load_entities(backend.payables, EntityRole.PAYABLE)
        clients = load_entities(backend.receivables, EntityRole.RECEIVABLE)

        names = [e.name for e in eligible_entities(vendors, clients, FlowDirection.PAYMENT)]

        # vendors we owe, then clients holding credit
        assert names == ["Acme Supplies", "Credit Client"]

    def test_receipt_candidates(self, backend):
        vendors = load_entities(backend.payables, EntityRole.PAYABLE)
        clients = load_entities(backend.receivables, EntityRole.RECEIVABLE)

        names = [e.name for e in eligible_entities(vendors, clients, "receipt")]

        assert names == ["Beta Traders", "Overpaid Vendor"]

    def test_zero_balances_excluded(self, backend):
        vendors = load_entities(backend.payables, EntityRole.PAYABLE)
        for direction in FlowDirection:
            assert "Settled Vendor" not in [e.name for e in eligible_entities(vendors, [], direction)]


class TestResolveEntity:

    def test_match(self, vendor, client_entity):
        resolved = resolve_entity([vendor, client_entity], "20", EntityRole.RECEIVABLE)

        assert resolved.entity is client_entity
        assert resolved.current_balance == Decimal("5000")
        assert resolved.classification == Classification.CLIENT

    def test_role_must_match(self, vendor):
        with pytest.raises(EntityNotFound):
            resolve_entity([vendor], "10", EntityRole.RECEIVABLE)

    def test_unknown_id(self, vendor):
        with pytest.raises(EntityNotFound) as exc:
            resolve_entity([vendor], "999", EntityRole.PAYABLE)
        assert exc.value.message == "Selected entity not found"

    def test_missing_selection(self, vendor):
        with pytest.raises(EntityNotFound):
            resolve_entity([vendor], "", EntityRole.PAYABLE)

    def test_integer_id(self, vendor):
        assert resolve_entity([vendor], 10, "payable").entity is vendor
