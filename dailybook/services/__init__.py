# Services Package
from dailybook.services.balance_resolver import (
    ResolvedEntity, eligible_entities, load_entities, resolve_entity
)
from dailybook.services.transaction_builder import (
    build_transaction, build_advance, build_deposit, build_payroll,
    build_expense, build_transfer, project_remaining
)
from dailybook.services.metrics_service import compute_metrics, compute_stats, is_paid, preview_names
from dailybook.services.filter_service import apply_filters, has_active_filters
from dailybook.services.ledger_service import build_payable_ledger, build_receivable_ledger
from dailybook.services.submission_service import TransactionSubmissionService
from dailybook.services.junction_service import JunctionService
from dailybook.services.export_service import export_transactions_xlsx, export_ledger_xlsx

__all__ = [
    'ResolvedEntity',
    'eligible_entities',
    'load_entities',
    'resolve_entity',
    'build_transaction',
    'build_advance',
    'build_deposit',
    'build_payroll',
    'build_expense',
    'build_transfer',
    'project_remaining',
    'compute_metrics',
    'compute_stats',
    'is_paid',
    'preview_names',
    'apply_filters',
    'has_active_filters',
    'build_payable_ledger',
    'build_receivable_ledger',
    'TransactionSubmissionService',
    'JunctionService',
    'export_transactions_xlsx',
    'export_ledger_xlsx',
]
