"""
Ledger Entry database model.

Immutable double-entry accounting records.
"""

import uuid
from sqlalchemy import Column, String, Float, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func
from bizledger.app.db.session import Base
from bizledger.app.models.ledger_enums import LedgerEntryStatus


class LedgerEntry(Base):
    """
    Ledger Entry model.
    
    One balanced transaction. `entries` holds the journal lines as a JSON
    list of {account_code, debit, credit, currency, memo, meta}.
    
    (transaction_id, source_type) is the idempotency key: a business event is
    posted at most once, enforced by the unique constraint.
    NO updates or deletions allowed.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint("transaction_id", "source_type", name="uq_ledger_entries_transaction_source"),
    )
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    
    # Linkage
    source_type = Column(String(20), nullable=False, index=True)
    source_id = Column(String(64), nullable=False, index=True)
    transaction_id = Column(String(80), nullable=False, index=True)
    
    # Journal lines
    entries = Column(JSON, nullable=False)
    total_debit = Column(Float, nullable=False)
    total_credit = Column(Float, nullable=False)
    
    status = Column(String(20), default=LedgerEntryStatus.POSTED.value, nullable=False, index=True)
    balance_hash = Column(String(128), default="", nullable=False)  # filled by a database trigger
    meta = Column(JSON, nullable=True)
    user_id = Column(String(36), index=True, nullable=True)
    
    # Timestamps (Immutable - no updated_at)
    posted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return (
            f"<LedgerEntry(id={self.id}, source='{self.source_type}:{self.source_id}', "
            f"debit={self.total_debit}, credit={self.total_credit})>"
        )
