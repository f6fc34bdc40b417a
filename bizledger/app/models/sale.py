"""
Sale database model.

Owned by the sales screens; the ledger only reads completed sales.
"""

import uuid
from sqlalchemy import Column, String, Float, DateTime
from sqlalchemy.sql import func
from bizledger.app.db.session import Base
from bizledger.app.models.ledger_enums import SaleStatus


class Sale(Base):
    __tablename__ = "sales"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer_name = Column(String(255), nullable=True)
    total = Column(Float, nullable=True)
    status = Column(String(20), default=SaleStatus.PENDING.value, nullable=False, index=True)
    date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    user_id = Column(String(36), index=True, nullable=True)
    
    def __repr__(self):
        return f"<Sale(id={self.id}, customer='{self.customer_name}', total={self.total})>"
