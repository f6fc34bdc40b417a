"""
Expenditure database model.
"""

import uuid
from sqlalchemy import Column, String, Float, DateTime, Text
from sqlalchemy.sql import func
from bizledger.app.db.session import Base


class Expenditure(Base):
    """
    Expenditure model.
    
    category is 'working-capital', 'fixed-capital' or empty; it selects the
    expense account the ledger debits.
    """
    __tablename__ = "expenditures"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    description = Column(Text, nullable=True)
    amount = Column(Float, nullable=True)
    category = Column(String(50), nullable=True)
    type = Column(String(100), nullable=True)
    date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    user_id = Column(String(36), index=True, nullable=True)
    
    def __repr__(self):
        return f"<Expenditure(id={self.id}, category='{self.category}', amount={self.amount})>"
