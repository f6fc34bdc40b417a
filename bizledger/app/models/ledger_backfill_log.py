"""
Ledger Backfill Log database model.

Append-only trace of every business event a backfill run touched.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from bizledger.app.db.session import Base


class LedgerBackfillLog(Base):
    __tablename__ = "ledger_backfill_logs"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    batch_id = Column(String(36), nullable=False, index=True)
    source_type = Column(String(20), nullable=False)
    source_id = Column(String(64), nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)  # success / error / skipped
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<LedgerBackfillLog(batch={self.batch_id}, source='{self.source_type}:{self.source_id}', status='{self.status}')>"
