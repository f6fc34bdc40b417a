"""
Audit Log Database Model.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from bizledger.app.db.session import Base


class AuditLog(Base):
    """
    One administrative action against the ledger.

    `target_id` is the backfill batch id or the reversed entry id, so an
    action can be traced from either side.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(64), nullable=False, index=True)
    target_id = Column(String(36), nullable=True, index=True)

    # Caller from the bearer token; None for scripted runs
    actor_id = Column(String(64), nullable=True, index=True)
    actor_username = Column(String(100), nullable=True)

    meta_data = Column(JSON, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', target={self.target_id})>"
