"""
Posting Engine (Domain Logic).

Maps one business event to one balanced ledger entry: a single debit line
and a single credit line for the event amount.

Pure: nothing here touches the database. Persistence belongs to the
backfill orchestrator, which is what makes dry runs possible.

Posting rules:
    sale     Dr 1100_accounts_receivable   Cr 4000_sales_revenue
    payment  Dr 1000_cash_bank             Cr 1100_accounts_receivable
    expense  Dr 5x00 by category           Cr 1000_cash_bank
"""

from typing import Callable, Dict, Optional, Tuple

from bizledger.app.core.config import settings
from bizledger.app.domain.ledger import accounts
from bizledger.app.domain.ledger.events import (
    BusinessEvent, SaleEvent, PaymentEvent, ExpenseEvent
)
from bizledger.app.models.ledger_enums import SourceType, LedgerEntryStatus
from bizledger.app.schemas.ledger import JournalLine, LedgerEntryCandidate, LedgerEntryResponse


REVERSAL_SUFFIX = "_reversal"

LinePair = Tuple[JournalLine, JournalLine]


def _sale_lines(event: SaleEvent, currency: str) -> LinePair:
    debit = JournalLine(
        account_code=accounts.ACCOUNTS_RECEIVABLE,
        debit=event.total,
        currency=currency,
        memo=f"Sale to {event.customer_name}",
        meta={"sale_id": event.id},
    )
    credit = JournalLine(
        account_code=accounts.SALES_REVENUE,
        credit=event.total,
        currency=currency,
        memo=f"Revenue from sale {event.id}",
        meta={"sale_id": event.id},
    )
    return debit, credit


def _payment_lines(event: PaymentEvent, currency: str) -> LinePair:
    debit = JournalLine(
        account_code=accounts.CASH_BANK,
        debit=event.amount,
        currency=currency,
        memo=f"Payment received from {event.customer} via {event.payment_method}",
        meta={"payment_id": event.id, "method": event.payment_method},
    )
    credit = JournalLine(
        account_code=accounts.ACCOUNTS_RECEIVABLE,
        credit=event.amount,
        currency=currency,
        memo=f"Payment for {event.product}",
        meta={"payment_id": event.id},
    )
    return debit, credit


def _expense_lines(event: ExpenseEvent, currency: str) -> LinePair:
    debit = JournalLine(
        account_code=accounts.expense_account_for(event.category),
        debit=event.amount,
        currency=currency,
        memo=event.description or "",
        meta={"expense_id": event.id, "type": event.type},
    )
    credit = JournalLine(
        account_code=accounts.CASH_BANK,
        credit=event.amount,
        currency=currency,
        memo=f"Payment for {event.description}",
        meta={"expense_id": event.id},
    )
    return debit, credit


_POSTING_RULES: Dict[SourceType, Callable[..., LinePair]] = {
    SourceType.SALE: _sale_lines,
    SourceType.PAYMENT: _payment_lines,
    SourceType.EXPENSE: _expense_lines,
}


class PostingEngine:

    def __init__(self, currency: Optional[str] = None):
        self.currency = currency or settings.ledger_currency

    def post(self, event: BusinessEvent) -> LedgerEntryCandidate:
        """
        Build the ledger entry for a business event.

        The source id doubles as the transaction id, so (transaction_id,
        source_type) identifies the event in the ledger.

        Raises:
            KeyError: for a source type with no posting rule
        """
        rule = _POSTING_RULES[event.source_type]
        debit, credit = rule(event, self.currency)
        return LedgerEntryCandidate(
            source_type=event.source_type,
            source_id=event.id,
            transaction_id=event.id,
            entries=[debit, credit],
            total_debit=debit.debit,
            total_credit=credit.credit,
            status=LedgerEntryStatus.POSTED,
            user_id=event.user_id,
        )

    @staticmethod
    def reverse(entry: LedgerEntryResponse, reason: str) -> LedgerEntryCandidate:
        """
        Build the entry that cancels a posted one.

        Every line has its debit and credit swapped; the totals swap with them.
        """
        lines = [
            line.model_copy(update={
                "debit": line.credit,
                "credit": line.debit,
                "memo": f"REVERSAL: {line.memo}",
            })
            for line in entry.entries
        ]
        return LedgerEntryCandidate(
            source_type=SourceType(entry.source_type),
            source_id=entry.source_id,
            transaction_id=f"{entry.transaction_id}{REVERSAL_SUFFIX}",
            entries=lines,
            total_debit=entry.total_credit,
            total_credit=entry.total_debit,
            status=LedgerEntryStatus.POSTED,
            user_id=entry.user_id,
            meta={"original_entry_id": entry.id, "reason": reason, "is_reversal": True},
        )
