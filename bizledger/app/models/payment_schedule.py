"""
Payment Schedule database model.

One installment of a rental/sale payment plan. Paid installments
(status 'paid' with a paid_date) are posted to the ledger as payments.
"""

import uuid
from sqlalchemy import Column, String, Float, DateTime
from bizledger.app.db.session import Base
from bizledger.app.models.ledger_enums import PaymentStatus


class PaymentSchedule(Base):
    __tablename__ = "payment_schedules"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer = Column(String(255), nullable=True)
    product = Column(String(255), nullable=True)
    amount = Column(Float, nullable=True)
    payment_method = Column(String(50), nullable=True)
    status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False, index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    paid_date = Column(DateTime(timezone=True), nullable=True, index=True)
    user_id = Column(String(36), index=True, nullable=True)
    
    def __repr__(self):
        return f"<PaymentSchedule(id={self.id}, status='{self.status}', amount={self.amount})>"
