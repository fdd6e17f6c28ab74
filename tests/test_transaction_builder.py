"""
Transaction building: settlement types, balance projection, advances and internal operations
"""
from datetime import datetime
from decimal import Decimal

import pytest

from dailybook.core.exceptions import (
    EntityNotFound, InsufficientBalance, InvalidAmount, MissingAccount, SameAccountTransfer
)
from dailybook.schemas import Client, EntityRole, ModeOfPayment, TransactionType, Vendor
from dailybook.services.balance_resolver import resolve_entity
from dailybook.services.transaction_builder import (
    build_advance, build_deposit, build_expense, build_payroll, build_transaction,
    build_transfer, parse_amount, project_remaining
)


class TestScenarios:

    def test_partial_vendor_payment(self, vendor):
        record = build_transaction(vendor, 2000, "payment", "1", date="2025-03-10")
        payload = record.to_api_payload()

        assert payload["type"] == "pay_able"
        assert payload["total_amount"] == "5000.00"
        assert payload["paid_amount"] == "2000.00"
        assert payload["remaining_payment"] == "3000.00"
        assert payload["source_account_id"] == "1"
        assert payload["destination_account_id"] is None
        assert payload["account_payable_id"] == "10"
        assert payload["account_receivable_id"] is None

    def test_client_receipt_settles_fully(self, client_entity):
        record = build_transaction(client_entity, "5000", "receipt", "1")
        payload = record.to_api_payload()

        assert payload["type"] == "receive_able"
        assert payload["remaining_payment"] == "0.00"
        assert payload["destination_account_id"] == "1"
        assert payload["source_account_id"] is None
        assert payload["account_receivable_id"] == "20"

    def test_client_advance(self, client_entity):
        record = build_advance(client_entity, 1500, "1")
        payload = record.to_api_payload()

        assert payload["type"] == "advance_sale_payment"
        assert payload["total_amount"] == "1500.00"
        assert payload["paid_amount"] == "1500.00"
        assert payload["remaining_payment"] == "0.00"
        assert payload["destination_account_id"] == "1"


class TestSettlementTypes:

    def test_vendor_receipt_is_reversal(self):
        vendor = Vendor.model_validate({"id": 11, "name": "Overpaid Vendor", "balance": "-750.50"})
        record = build_transaction(vendor, "250.50", "receipt", "2")

        assert record.type == TransactionType.RECEIVE_ABLE_VENDOR
        assert record.remaining_payment == Decimal("-500.00")
        assert record.destination_account_id == "2"

    def test_client_payment_is_reversal(self):
        client = Client.model_validate({"id": 21, "name": "Credit Client", "balance": "-300"})
        record = build_transaction(client, 300, "payment", "1")

        assert record.type == TransactionType.PAY_ABLE_CLIENT
        assert record.remaining_payment == Decimal("0.00")
        assert record.total_amount == Decimal("-300.00")

    def test_accepts_resolved_entity(self, vendor):
        resolved = resolve_entity([vendor], "10", EntityRole.PAYABLE)
        record = build_transaction(resolved, 100, "payment", "1")
        assert record.remaining_payment == Decimal("4900.00")


class TestAuditNote:

    def test_note_only(self, vendor):
        record = build_transaction(vendor, 2000, "payment", "1")
        assert record.description == (
            "Note: Acme Supplies (Account Payable) balance at time of payment is: Rs 5,000.00"
        )

    def test_note_after_user_text(self, client_entity):
        record = build_transaction(client_entity, 100, "receipt", "1", description="  March invoice  ")
        assert record.description == (
            "March invoice\n"
            "Note: Beta Traders (Account Receivable) balance at time of receipt is: Rs 5,000.00"
        )


class TestProjection:

    @pytest.mark.parametrize("classification, direction, expected", [
        ("vendor", "payment", Decimal("3000.00")),
        ("client", "receipt", Decimal("3000.00")),
        ("vendor", "receipt", Decimal("7000.00")),
        ("client", "payment", Decimal("7000.00")),
    ])
    def test_direction_rules(self, classification, direction, expected):
        assert project_remaining(classification, direction, "5000", "2000") == expected

    def test_zero_amount_keeps_balance(self, vendor):
        record = build_transaction(vendor, 1234.56, "payment", "1")
        assert project_remaining("vendor", "payment", record.remaining_payment, 0) == record.remaining_payment

    def test_repeated_projection_has_no_drift(self):
        balance = Decimal("1000.00")
        for _ in range(10):
            balance = project_remaining("vendor", "payment", balance, "0.10")
        assert balance == Decimal("999.00")

    def test_negative_amount(self):
        with pytest.raises(InvalidAmount):
            project_remaining("vendor", "payment", 100, -1)


class TestValidation:

    @pytest.mark.parametrize("amount", [0, "0", -5, "", None, "abc", "0.001", "1e30"])
    def test_invalid_amount(self, vendor, amount):
        with pytest.raises(InvalidAmount):
            build_transaction(vendor, amount, "payment", "1")

    def test_missing_account(self, vendor):
        with pytest.raises(MissingAccount):
            build_transaction(vendor, 100, "payment", "")

    def test_missing_entity(self):
        with pytest.raises(EntityNotFound):
            build_transaction(None, 100, "payment", "1")

    def test_entity_checked_before_amount(self):
        with pytest.raises(EntityNotFound):
            build_transaction(None, 0, "payment", None)

    def test_amount_rounding(self):
        assert parse_amount("1,999.995") == Decimal("2000.00")


class TestRecordFields:

    def test_defaults(self, vendor):
        record = build_transaction(vendor, 100, "payment", "1", user_id="7")

        assert record.mode_of_payment == ModeOfPayment.CASH
        assert record.user_id == "7"
        assert isinstance(record.date, datetime)
        assert record.idempotency_key

    def test_fresh_idempotency_keys(self, vendor):
        first = build_transaction(vendor, 100, "payment", "1")
        second = build_transaction(vendor, 100, "payment", "1")
        assert first.idempotency_key != second.idempotency_key

    def test_supplied_idempotency_key(self, vendor, bank_account):
        assert build_transaction(vendor, 100, "payment", "1", idempotency_key="k1").idempotency_key == "k1"
        assert build_deposit(bank_account, 100, idempotency_key="k2").idempotency_key == "k2"

    def test_payload_excludes_local_fields(self, vendor):
        payload = build_transaction(vendor, 100, "payment", "1", mode="check").to_api_payload()

        assert "id" not in payload
        assert "idempotency_key" not in payload
        assert payload["mode_of_payment"] == "check"


class TestAdvances:

    def test_vendor_advance_uses_source(self, vendor):
        record = build_advance(vendor, "750", "2", description="Deposit for steel")

        assert record.type == TransactionType.ADVANCE_PURCHASE_PAYMENT
        assert record.source_account_id == "2"
        assert record.account_payable_id == "10"
        assert record.description == "Deposit for steel"

    def test_advance_requires_account(self, client_entity):
        with pytest.raises(MissingAccount):
            build_advance(client_entity, 100, None)

    def test_advance_requires_entity(self):
        with pytest.raises(EntityNotFound):
            build_advance(None, 100, "1")


class TestInternalOperations:

    def test_deposit_default_description(self, bank_account):
        record = build_deposit(bank_account, 2500, date="2025-01-05")

        assert record.type == TransactionType.DEPOSIT
        assert record.destination_account_id == "1"
        assert record.total_amount == record.paid_amount == Decimal("2500.00")
        assert record.remaining_payment == Decimal("0.00")
        assert record.description == "Deposit to Main Bank - Jan 5, 2025"

    def test_payroll_checks_balance(self, cash_account):
        with pytest.raises(InsufficientBalance):
            build_payroll(cash_account, "500.01")

    def test_payroll(self, cash_account):
        record = build_payroll(cash_account, 500, date="2025-02-28")
        assert record.description == "Payroll payment - Feb 28, 2025"
        assert record.source_account_id == "2"

    @pytest.mark.parametrize("expense_type", ["fixed_utility", "fixed_expense", "miscellaneous"])
    def test_expenses(self, bank_account, expense_type):
        record = build_expense(expense_type, bank_account, 100, description="Electricity")
        assert record.type.value == expense_type
        assert record.description == "Electricity"

    def test_expense_type_restricted(self, bank_account):
        with pytest.raises(ValueError):
            build_expense("sale", bank_account, 100)

    def test_expense_requires_account(self):
        with pytest.raises(MissingAccount):
            build_expense("fixed_utility", None, 100)

    def test_transfer(self, bank_account, cash_account):
        record = build_transfer(bank_account, cash_account, 1000)

        assert record.type == TransactionType.TRANSFER
        assert record.source_account_id == "1"
        assert record.destination_account_id == "2"
        assert record.description == "Transfer from Main Bank to Petty Cash"

    def test_transfer_same_account(self, bank_account):
        with pytest.raises(SameAccountTransfer):
            build_transfer(bank_account, bank_account, 10)

    def test_transfer_low_balance(self, bank_account, cash_account):
        with pytest.raises(InsufficientBalance) as exc:
            build_transfer(cash_account, bank_account, 501)
        assert "balance is low" in exc.value.message
