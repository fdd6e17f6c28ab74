"""
Shared fixtures: in-memory backend and sample records
"""
from datetime import datetime
from decimal import Decimal

import pytest

from dailybook.core.cache import ReadModelCache
from dailybook.core.exceptions import NetworkFailure
from dailybook.schemas import Account, Client, TransactionRecord, TransactionType, Vendor
from dailybook.services.junction_service import JUNCTION_KINDS


class FakeBackend:
    """Stands in for BackendClient; records every write"""

    def __init__(self):
        self.accounts = [
            {"id": 1, "name": "Main Bank", "account_type": "bank", "balance": "10000.00", "status": "active"},
            {"id": 2, "name": "Petty Cash", "account_type": "petty", "balance": "500", "status": "active"},
        ]
        self.payables = [
            {"id": 10, "name": "Acme Supplies", "balance": "5000"},
            {"id": 11, "name": "Overpaid Vendor", "balance": "-750.50"},
            {"id": 12, "name": "Settled Vendor", "balance": "0"},
        ]
        self.receivables = [
            {"id": 20, "name": "Beta Traders", "balance": 5000},
            {"id": 21, "name": "Credit Client", "balance": "-300"},
        ]
        self.transactions = []
        self.junctions = {}
        self.created = []
        self.deleted = []
        self.junction_calls = []
        self.fail_junction = {}
        self.fail_create = None
        self.list_calls = 0
        self.access_token = "token"
        self.refresh_token = "refresh"

    def login(self, identifier, password):
        if password != "secret":
            raise NetworkFailure("Invalid credentials", status_code=401)
        self.access_token = "token"
        return {"id": 7, "username": identifier}

    def list_accounts(self):
        self.list_calls += 1
        return list(self.accounts)

    def list_account_payables(self):
        self.list_calls += 1
        return list(self.payables)

    def list_account_receivables(self):
        self.list_calls += 1
        return list(self.receivables)

    def list_transactions(self, criteria=None, page=None, limit=None):
        self.list_calls += 1
        return list(self.transactions)

    def create_transaction(self, payload, idempotency_key=None):
        if self.fail_create:
            raise self.fail_create
        created = dict(payload, id=str(len(self.created) + 100))
        self.created.append((payload, idempotency_key))
        return created

    def delete_transaction(self, transaction_id):
        self.deleted.append(transaction_id)

    def list_junction(self, kind, owner_path, owner_id):
        return [dict(row) for row in self.junctions.get((kind, owner_id), [])]

    def add_junction(self, kind, body):
        self.junction_calls.append(("add", kind, body))
        related_id = str(body[JUNCTION_KINDS[kind].related_field])
        error = self.fail_junction.get(related_id)
        if error:
            raise error
        return body

    def remove_junction(self, kind, owner_path, owner_id, related_path, related_id):
        self.junction_calls.append(("remove", kind, owner_id, related_id))
        error = self.fail_junction.get(str(related_id))
        if error:
            raise error


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def cache():
    return ReadModelCache()


@pytest.fixture
def vendor():
    return Vendor.model_validate({"id": 10, "name": "Acme Supplies", "balance": "5000"})


@pytest.fixture
def client_entity():
    return Client.model_validate({"id": 20, "name": "Beta Traders", "balance": "5000"})


@pytest.fixture
def bank_account():
    return Account.model_validate({"id": 1, "name": "Main Bank", "balance": "10000.00"})


@pytest.fixture
def cash_account():
    return Account.model_validate({"id": 2, "name": "Petty Cash", "balance": "500"})


@pytest.fixture
def make_tx():
    return _make_tx


def _make_tx(**overrides):
    data = {
        "id": "1",
        "type": TransactionType.PAY_ABLE,
        "date": datetime(2025, 3, 10, 9, 30),
        "total_amount": Decimal("100"),
        "paid_amount": Decimal("100"),
        "remaining_payment": Decimal("0"),
    }
    data.update(overrides)
    return TransactionRecord.model_validate(data)


@pytest.fixture
def conflict():
    return NetworkFailure("duplicate key value violates unique constraint", status_code=500)
