"""
Ledger Schemas.

Request/response shapes for backfill runs, ledger entries and the
trial balance report.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional

from bizledger.app.core.config import settings
from bizledger.app.models.ledger_enums import (
    SourceType, LedgerEntryStatus, BackfillStatus, NormalBalance
)


class JournalLine(BaseModel):
    """A single debit-or-credit posting to one account."""
    account_code: str
    debit: float = 0.0
    credit: float = 0.0
    currency: str = "USD"
    memo: str = ""
    meta: Dict[str, Any] = Field(default_factory=dict)


class LedgerEntryCandidate(BaseModel):
    """A balanced entry computed from a business event, not yet persisted."""
    source_type: SourceType
    source_id: str
    transaction_id: str
    entries: List[JournalLine]
    total_debit: float
    total_credit: float
    status: LedgerEntryStatus = LedgerEntryStatus.POSTED
    user_id: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


class LedgerEntryResponse(BaseModel):
    """Schema for displaying a stored ledger entry."""
    id: str
    source_type: str
    source_id: str
    transaction_id: str
    entries: List[JournalLine]
    total_debit: float
    total_credit: float
    status: str
    balance_hash: str = ""
    meta: Optional[Dict[str, Any]] = None
    user_id: Optional[str] = None
    posted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BackfillRequest(BaseModel):
    """Schema for starting a backfill run."""
    batch_size: int = Field(default=settings.backfill_default_batch_size, ge=1, le=settings.backfill_max_batch_size)
    test_mode: bool = False
    source_types: List[SourceType] = Field(
        default_factory=lambda: [SourceType.SALE, SourceType.PAYMENT, SourceType.EXPENSE]
    )


class BackfillDetail(BaseModel):
    """Per-record trace of a backfill run."""
    type: SourceType
    id: str
    status: BackfillStatus
    error: Optional[str] = None


class BackfillResponse(BaseModel):
    """Aggregate counters of a backfill run."""
    batch_id: str
    processed: int = 0
    success: int = 0
    error: int = 0
    skipped: int = 0
    details: List[BackfillDetail] = Field(default_factory=list)


class BackfillLogResponse(BaseModel):
    """Schema for displaying a backfill log record."""
    id: int
    batch_id: str
    source_type: str
    source_id: str
    status: str
    error_message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogResponse(BaseModel):
    id: int
    action: str
    target_id: Optional[str] = None
    actor_id: Optional[str] = None
    actor_username: Optional[str] = None
    meta_data: Optional[Dict[str, Any]] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class ReverseEntryRequest(BaseModel):
    """Schema for reversing a posted entry."""
    reason: str = Field(..., min_length=1, max_length=500)


class AccountResponse(BaseModel):
    """One account of the fixed chart of accounts."""
    code: str
    name: str
    normal_balance: NormalBalance


class TrialBalanceRow(BaseModel):
    """Debit and credit totals of one account across all posted entries."""
    account_code: str
    total_debit: float
    total_credit: float
    balance: float


class TrialBalanceReport(BaseModel):
    """Trial balance with global and per-entry balance checks."""
    trial_balance: List[TrialBalanceRow]
    total_debits: float
    total_credits: float
    difference: float
    is_balanced: bool
    unbalanced_entries: List[LedgerEntryResponse]
    entry_count: int
