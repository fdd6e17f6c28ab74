"""
Ledger Errors

Validation errors are raised before anything is sent to the backend; the
web layer turns them into blocking user messages. Network errors carry the
server's message when one was returned.
"""
from typing import Optional


class LedgerError(ValueError):
    """Base class for every error raised by the ledger engine"""

    default_message = "Ledger operation failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


# ==================== VALIDATION ====================

class InvalidAmount(LedgerError):
    default_message = "Please enter a valid amount greater than 0"


class MissingAccount(LedgerError):
    default_message = "Please select an account"


class EntityNotFound(LedgerError):
    default_message = "Selected entity not found"


class SameAccountTransfer(LedgerError):
    default_message = "Source and destination accounts cannot be the same"


class InsufficientBalance(LedgerError):
    default_message = "Insufficient balance in selected account"


class DuplicateSubmission(LedgerError):
    default_message = "This transaction has already been submitted"


# ==================== BACKEND ====================

class DuplicateRelationship(LedgerError):
    """Junction row already exists; callers treat it as success"""
    default_message = "Relationship already exists"


class NetworkFailure(LedgerError):
    """Any failed HTTP exchange with the backend"""
    default_message = "Backend request failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PartialBatchFailure(LedgerError):
    """Some junction calls succeeded while others failed"""
    default_message = "Some relationship changes could not be saved"

    def __init__(self, result, message: Optional[str] = None):
        if message is None:
            message = (
                f"{len(result.failed)} of {result.attempted} relationship changes failed; "
                f"{result.succeeded} were applied"
            )
        super().__init__(message)
        self.result = result


VALIDATION_ERRORS = (
    InvalidAmount,
    MissingAccount,
    EntityNotFound,
    SameAccountTransfer,
    InsufficientBalance,
    DuplicateSubmission,
)
