"""
Ledger enumerations.
"""

import enum


class SourceType(str, enum.Enum):
    """Kind of business event a ledger entry was posted from."""
    SALE = "sale"
    PAYMENT = "payment"
    EXPENSE = "expense"


class LedgerEntryStatus(str, enum.Enum):
    """Ledger entry status. The posting core only ever writes POSTED."""
    POSTED = "posted"


class BackfillStatus(str, enum.Enum):
    """Outcome of one business event within a backfill batch."""
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class NormalBalance(str, enum.Enum):
    """Side on which an account's balance normally increases."""
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class ExpenseCategory(str, enum.Enum):
    """Expenditure categories recognised by the expense account mapping."""
    WORKING_CAPITAL = "working-capital"
    FIXED_CAPITAL = "fixed-capital"


class SaleStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
