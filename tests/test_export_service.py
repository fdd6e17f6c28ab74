"""
Excel exports
"""
from datetime import datetime
from io import BytesIO

from openpyxl import load_workbook

from dailybook.schemas import TransactionType
from dailybook.services.export_service import export_ledger_xlsx, export_transactions_xlsx
from dailybook.services.ledger_service import build_payable_ledger


def cells(ws):
    return [value for row in ws.iter_rows(values_only=True) for value in row if value is not None]


class TestTransactionsExport:

    def test_workbook_contents(self, make_tx):
        transactions = [
            make_tx(id="1", description="Steel order", account_payable_name="Acme Supplies",
                    total_amount=5000, paid_amount=2000, remaining_payment=3000),
            make_tx(id="2", description="Cement", total_amount=100, paid_amount=100, remaining_payment=0),
        ]

        content = export_transactions_xlsx(transactions, title="Payables")
        ws = load_workbook(BytesIO(content)).active
        values = cells(ws)

        assert ws.title == "Transactions"
        assert ws["A1"].value == "Payables"
        assert "Steel order" in values
        assert "Acme Supplies" in values
        assert "Payable" in values
        assert "TOTAL" in values
        assert 5100.0 in values
        assert 3000.0 in values

    def test_empty_list(self):
        ws = load_workbook(BytesIO(export_transactions_xlsx([]))).active
        assert "Total Transactions" in cells(ws)


class TestLedgerExport:

    def test_running_balance_column(self, make_tx):
        rows = build_payable_ledger(0, [
            make_tx(id="1", type=TransactionType.PURCHASE, date=datetime(2025, 1, 1),
                    total_amount=5000, paid_amount=0),
            make_tx(id="2", type=TransactionType.PAY_ABLE, date=datetime(2025, 1, 2),
                    total_amount=5000, paid_amount=2000),
        ])

        ws = load_workbook(BytesIO(export_ledger_xlsx(rows, "Acme Supplies"))).active
        values = cells(ws)

        assert ws["A1"].value == "Ledger - Acme Supplies"
        assert 3000.0 in values
        assert "2025-01-02" in values
