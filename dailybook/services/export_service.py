"""
Excel export of transaction lists and counterparty ledgers
"""
from typing import List, Optional, Sequence
from datetime import datetime
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter

from dailybook.core.config import settings
from dailybook.core.formatting import to_decimal
from dailybook.schemas import (
    MODE_OF_PAYMENT_LABELS, TRANSACTION_TYPE_LABELS, LedgerRow, Metrics, TransactionRecord
)
from dailybook.services.metrics_service import compute_metrics, is_paid

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CURRENCY_FORMAT = '#,##0.00'

# Styles
header_font = Font(bold=True, color="FFFFFF", size=11)
header_fill = PatternFill(start_color="1e40af", end_color="1e40af", fill_type="solid")
title_font = Font(bold=True, size=14)
subtitle_font = Font(bold=True, size=10)
currency_font = Font(name='Consolas', size=10)
total_font = Font(bold=True, size=10)
total_fill = PatternFill(start_color="f3f4f6", end_color="f3f4f6", fill_type="solid")
thin_border = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)


def _write_header_row(ws, row: int, headers: Sequence[str]):
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal='center')
        cell.border = thin_border


def _money_cell(ws, row: int, col: int, value):
    cell = ws.cell(row=row, column=col, value=float(to_decimal(value)) if value is not None else None)
    cell.number_format = CURRENCY_FORMAT
    cell.font = currency_font
    cell.alignment = Alignment(horizontal='right')
    cell.border = thin_border
    return cell


def _text_cell(ws, row: int, col: int, value):
    cell = ws.cell(row=row, column=col, value=value)
    cell.border = thin_border
    return cell


def _title_block(ws, title: str, last_col: str, period: Optional[str] = None) -> int:
    ws['A1'] = title
    ws['A1'].font = title_font
    ws.merge_cells(f'A1:{last_col}1')

    ws['A2'] = settings.APP_NAME
    ws['A2'].font = subtitle_font
    ws.merge_cells(f'A2:{last_col}2')

    ws['A4'] = "Period:"
    ws['B4'] = period or "All"
    ws['A5'] = "Currency:"
    ws['B5'] = settings.CURRENCY_CODE
    ws['A6'] = "Generated:"
    ws['B6'] = datetime.now().strftime('%Y-%m-%d %H:%M')
    return 8


def _save(wb: Workbook) -> bytes:
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def export_filename(prefix: str) -> str:
    return f"{prefix}_{datetime.now().strftime('%Y%m%d')}.xlsx"


def export_transactions_xlsx(transactions: List[TransactionRecord], metrics: Optional[Metrics] = None,
                             title: str = "Transactions", period: Optional[str] = None) -> bytes:
    """Workbook with a summary block followed by one row per transaction"""
    metrics = metrics or compute_metrics(transactions)

    wb = Workbook()
    ws = wb.active
    ws.title = "Transactions"

    row = _title_block(ws, title, 'I', period)

    # Summary
    summary = [
        ("Total Transactions", metrics.total_count, False),
        ("Total Amount", metrics.total_amount, True),
        ("Paid Amount", metrics.paid_amount, True),
        ("Unpaid Amount", metrics.unpaid_amount, True),
    ]
    for label, value, is_money in summary:
        ws.cell(row=row, column=1, value=label).font = subtitle_font
        if is_money:
            cell = ws.cell(row=row, column=2, value=float(value))
            cell.number_format = CURRENCY_FORMAT
        else:
            ws.cell(row=row, column=2, value=value)
        row += 1
    row += 1

    headers = ['Date', 'Type', 'Counterparty', 'Account', 'Mode', 'Description',
               'Total', 'Paid', 'Remaining']
    _write_header_row(ws, row, headers)
    row += 1

    for tx in transactions:
        account = tx.source_account_name or tx.destination_account_name or ''
        mode = MODE_OF_PAYMENT_LABELS.get(tx.mode_of_payment, '') if tx.mode_of_payment else ''
        _text_cell(ws, row, 1, tx.date.strftime('%Y-%m-%d') if tx.date else '')
        _text_cell(ws, row, 2, TRANSACTION_TYPE_LABELS.get(tx.type, tx.type.value))
        _text_cell(ws, row, 3, tx.counterparty_name or '')
        _text_cell(ws, row, 4, account)
        _text_cell(ws, row, 5, mode)
        _text_cell(ws, row, 6, tx.description or '')
        _money_cell(ws, row, 7, tx.total_amount)
        _money_cell(ws, row, 8, tx.paid_amount)
        remaining = _money_cell(ws, row, 9, tx.remaining_payment)
        if not is_paid(tx.remaining_payment):
            remaining.font = Font(name='Consolas', size=10, color="b91c1c")
        row += 1

    # Totals row
    for col in range(1, len(headers) + 1):
        ws.cell(row=row, column=col).fill = total_fill
        ws.cell(row=row, column=col).font = total_font
        ws.cell(row=row, column=col).border = thin_border

    ws.cell(row=row, column=6, value="TOTAL")
    ws.cell(row=row, column=7, value=float(metrics.total_amount)).number_format = CURRENCY_FORMAT
    ws.cell(row=row, column=8, value=float(metrics.paid_amount)).number_format = CURRENCY_FORMAT
    ws.cell(row=row, column=9, value=float(metrics.unpaid_amount)).number_format = CURRENCY_FORMAT

    column_widths = [12, 24, 24, 20, 14, 40, 14, 14, 14]
    for col, width in enumerate(column_widths, 1):
        ws.column_dimensions[get_column_letter(col)].width = width

    return _save(wb)


def export_ledger_xlsx(rows: List[LedgerRow], counterparty_name: str, opening_balance=0,
                       period: Optional[str] = None) -> bytes:
    """Counterparty ledger with debit, credit and running balance columns"""
    wb = Workbook()
    ws = wb.active
    ws.title = "Ledger"

    row = _title_block(ws, f"Ledger - {counterparty_name}", 'F', period)

    ws.cell(row=row, column=1, value="Opening Balance").font = subtitle_font
    ws.cell(row=row, column=2, value=float(to_decimal(opening_balance))).number_format = CURRENCY_FORMAT
    row += 2

    headers = ['Date', 'Type', 'Description', 'Debit', 'Credit', 'Balance']
    _write_header_row(ws, row, headers)
    row += 1

    total_debit = total_credit = 0.0
    closing = float(to_decimal(opening_balance))
    for entry in rows:
        tx = entry.transaction
        _text_cell(ws, row, 1, tx.date.strftime('%Y-%m-%d') if tx.date else '')
        _text_cell(ws, row, 2, TRANSACTION_TYPE_LABELS.get(tx.type, tx.type.value))
        _text_cell(ws, row, 3, tx.description or '')
        _money_cell(ws, row, 4, entry.debit if entry.debit else None)
        _money_cell(ws, row, 5, entry.credit if entry.credit else None)
        _money_cell(ws, row, 6, entry.balance)
        total_debit += float(entry.debit)
        total_credit += float(entry.credit)
        closing = float(entry.balance)
        row += 1

    for col in range(1, 7):
        ws.cell(row=row, column=col).fill = total_fill
        ws.cell(row=row, column=col).font = total_font
        ws.cell(row=row, column=col).border = thin_border

    ws.cell(row=row, column=3, value="TOTAL")
    ws.cell(row=row, column=4, value=total_debit).number_format = CURRENCY_FORMAT
    ws.cell(row=row, column=5, value=total_credit).number_format = CURRENCY_FORMAT
    ws.cell(row=row, column=6, value=closing).number_format = CURRENCY_FORMAT

    column_widths = [12, 24, 48, 14, 14, 15]
    for col, width in enumerate(column_widths, 1):
        ws.column_dimensions[get_column_letter(col)].width = width

    return _save(wb)
