"""
Transaction submission - validate, build, post, invalidate
"""
from typing import List, Optional, Set
import logging
import threading

from dailybook.api_client import BackendClient
from dailybook.core.cache import Mutation, ReadModel, ReadModelCache
from dailybook.core.exceptions import DuplicateSubmission, EntityNotFound
from dailybook.schemas import (
    Account, Client, CounterpartyEntity, EntityRole, FlowDirection, TransactionRecord, Vendor
)
from dailybook.services import transaction_builder as builder
from dailybook.services.balance_resolver import eligible_entities, load_entities, resolve_entity

logger = logging.getLogger(__name__)

DIRECTION_MUTATIONS = {
    FlowDirection.PAYMENT: Mutation.PAYMENT_CREATED,
    FlowDirection.RECEIPT: Mutation.RECEIPT_CREATED,
}


class SentKeys:
    """Idempotency keys already posted, shared by every request of one user"""

    def __init__(self):
        self._keys: Set[str] = set()
        self._lock = threading.Lock()

    def claim(self, key: str) -> bool:
        """Reserve `key`; False when it was sent before"""
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._keys.discard(key)

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._keys


class TransactionSubmissionService:
    """Posts built transactions and keeps the read-model cache honest"""

    def __init__(self, client: BackendClient, cache: Optional[ReadModelCache] = None,
                 user_id: Optional[str] = None, sent_keys: Optional[SentKeys] = None):
        self.client = client
        self.cache = cache or ReadModelCache()
        self.user_id = user_id
        self.sent_keys = sent_keys if sent_keys is not None else SentKeys()

    # ==================== READ MODELS ====================

    def accounts(self) -> List[Account]:
        return self.cache.get(
            ReadModel.ACCOUNTS,
            lambda: [Account.model_validate(a) for a in self.client.list_accounts()],
        )

    def vendors(self) -> List[Vendor]:
        return self.cache.get(
            ReadModel.ACCOUNT_PAYABLES,
            lambda: load_entities(self.client.list_account_payables(), EntityRole.PAYABLE),
        )

    def clients(self) -> List[Client]:
        return self.cache.get(
            ReadModel.ACCOUNT_RECEIVABLES,
            lambda: load_entities(self.client.list_account_receivables(), EntityRole.RECEIVABLE),
        )

    def candidates(self, direction) -> List[CounterpartyEntity]:
        """Counterparties selectable for a payment or a receipt"""
        return eligible_entities(self.vendors(), self.clients(), direction)

    def find_account(self, account_id: Optional[str]) -> Optional[Account]:
        if not account_id:
            return None
        for account in self.accounts():
            if account.id == str(account_id):
                return account
        return None

    def _find_entity(self, entity_id: Optional[str], role) -> CounterpartyEntity:
        role = EntityRole(role)
        entities = self.vendors() if role == EntityRole.PAYABLE else self.clients()
        return resolve_entity(entities, entity_id, role).entity

    # ==================== SUBMISSION ====================

    def submit(self, record: TransactionRecord, mutation: str) -> TransactionRecord:
        """Post a built record once and publish its mutation"""
        key = record.idempotency_key
        if key and not self.sent_keys.claim(key):
            logger.warning(f"Rejected resubmission of {record.type.value} transaction ({key})")
            raise DuplicateSubmission()

        payload = record.to_api_payload()
        logger.info(f"Posting {record.type.value} transaction ({key})")
        try:
            created = self.client.create_transaction(payload, idempotency_key=key)
        except Exception:
            logger.error(f"Failed to post {record.type.value} transaction ({key})", exc_info=True)
            if key:
                self.sent_keys.release(key)
            raise

        self.cache.publish(mutation)
        if isinstance(created, dict) and created:
            return TransactionRecord.model_validate(created)
        return record

    def _check_form(self, entity_id, account_id, amount, direction) -> None:
        """Selection, account and amount are checked before the candidate lookup"""
        if entity_id in (None, ""):
            raise EntityNotFound("Please select a vendor or client")
        builder.settlement_account(account_id, direction)
        builder.parse_amount(amount)

    def settle(self, direction, entity_id: Optional[str], role, amount, account_id: Optional[str],
               date=None, mode=None, description: Optional[str] = None,
               idempotency_key: Optional[str] = None) -> TransactionRecord:
        """Payment to / receipt from a counterparty among the current candidates"""
        direction = FlowDirection(direction)
        self._check_form(entity_id, account_id, amount, direction)
        resolved = resolve_entity(self.candidates(direction), entity_id, role)
        record = builder.build_transaction(
            resolved, amount, direction, account_id,
            date=date, mode=mode, description=description, user_id=self.user_id,
            idempotency_key=idempotency_key,
        )
        return self.submit(record, DIRECTION_MUTATIONS[direction])

    def pay(self, entity_id, role, amount, account_id, **kwargs) -> TransactionRecord:
        return self.settle(FlowDirection.PAYMENT, entity_id, role, amount, account_id, **kwargs)

    def receive(self, entity_id, role, amount, account_id, **kwargs) -> TransactionRecord:
        return self.settle(FlowDirection.RECEIPT, entity_id, role, amount, account_id, **kwargs)

    def advance(self, entity_id, role, amount, account_id, date=None, mode=None,
                description: Optional[str] = None,
                idempotency_key: Optional[str] = None) -> TransactionRecord:
        # money comes in from clients and goes out to vendors
        direction = FlowDirection.RECEIPT if EntityRole(role) == EntityRole.RECEIVABLE else FlowDirection.PAYMENT
        self._check_form(entity_id, account_id, amount, direction)
        entity = self._find_entity(entity_id, role)
        record = builder.build_advance(
            entity, amount, account_id,
            date=date, mode=mode, description=description, user_id=self.user_id,
            idempotency_key=idempotency_key,
        )
        return self.submit(record, Mutation.ADVANCE_CREATED)

    def deposit(self, account_id, amount, **kwargs) -> TransactionRecord:
        record = builder.build_deposit(self.find_account(account_id), amount, user_id=self.user_id, **kwargs)
        return self.submit(record, Mutation.INTERNAL_OPERATION_CREATED)

    def payroll(self, account_id, amount, **kwargs) -> TransactionRecord:
        record = builder.build_payroll(self.find_account(account_id), amount, user_id=self.user_id, **kwargs)
        return self.submit(record, Mutation.INTERNAL_OPERATION_CREATED)

    def expense(self, expense_type, account_id, amount, **kwargs) -> TransactionRecord:
        record = builder.build_expense(
            expense_type, self.find_account(account_id), amount, user_id=self.user_id, **kwargs
        )
        return self.submit(record, Mutation.INTERNAL_OPERATION_CREATED)

    def transfer(self, source_id, destination_id, amount, **kwargs) -> TransactionRecord:
        record = builder.build_transfer(
            self.find_account(source_id), self.find_account(destination_id), amount,
            user_id=self.user_id, **kwargs
        )
        return self.submit(record, Mutation.TRANSFER_CREATED)

    def delete_transaction(self, transaction_id: str) -> None:
        logger.info(f"Deleting transaction {transaction_id}")
        self.client.delete_transaction(transaction_id)
        self.cache.publish(Mutation.TRANSACTION_DELETED)

    # ==================== LISTS ====================

    def transactions(self, criteria=None, page: Optional[int] = None,
                     limit: Optional[int] = None) -> List[TransactionRecord]:
        """Server-filtered list; only the unfiltered first page is cached"""
        def load():
            return [TransactionRecord.model_validate(t)
                    for t in self.client.list_transactions(criteria, page=page, limit=limit)]

        if criteria is None and page is None and limit is None:
            return self.cache.get(ReadModel.TRANSACTIONS, load)
        return load()
