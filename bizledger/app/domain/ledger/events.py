"""
Business Events.

Read-only views of the sales, payment-schedule and expenditure rows the
ledger posts from. `BusinessEvent` is the tagged union over the three kinds,
discriminated by `source_type`.
"""

import math
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel

from bizledger.app.core.exceptions import InvalidEventError
from bizledger.app.models.ledger_enums import SourceType


class SaleEvent(BaseModel):
    source_type: Literal[SourceType.SALE] = SourceType.SALE
    id: str
    customer_name: Optional[str] = None
    total: float
    user_id: Optional[str] = None

    @property
    def amount(self) -> float:
        return self.total


class PaymentEvent(BaseModel):
    """A paid installment of a payment schedule."""
    source_type: Literal[SourceType.PAYMENT] = SourceType.PAYMENT
    id: str
    customer: Optional[str] = None
    product: Optional[str] = None
    amount: float
    payment_method: Optional[str] = None
    user_id: Optional[str] = None


class ExpenseEvent(BaseModel):
    source_type: Literal[SourceType.EXPENSE] = SourceType.EXPENSE
    id: str
    description: Optional[str] = None
    amount: float
    category: Optional[str] = None
    type: Optional[str] = None
    user_id: Optional[str] = None


BusinessEvent = Union[SaleEvent, PaymentEvent, ExpenseEvent]

_EVENT_TYPES = {
    SourceType.SALE: SaleEvent,
    SourceType.PAYMENT: PaymentEvent,
    SourceType.EXPENSE: ExpenseEvent,
}


def build_event(source_type: SourceType, snapshot: Dict[str, Any]) -> BusinessEvent:
    """
    Build a typed event from a store row snapshot.
    
    Raises:
        pydantic.ValidationError: if the row is missing an id or its amount is not numeric
    """
    data = {key: value for key, value in snapshot.items() if key != "source_type"}
    if data.get("id") is not None:
        data["id"] = str(data["id"])
    return _EVENT_TYPES[SourceType(source_type)].model_validate(data)


def validate_event_amount(event: BusinessEvent) -> None:
    """
    Reject events whose amount cannot produce a meaningful entry.
    
    Zero amounts are rejected too: they would post lines with neither a
    debit nor a credit.
    """
    amount = event.amount
    if not math.isfinite(amount):
        raise InvalidEventError(event.source_type.value, event.id, f"amount {amount} is not a finite number")
    if amount <= 0:
        raise InvalidEventError(event.source_type.value, event.id, f"amount must be positive, got {amount}")
