"""
Trial Balance (Read-Only).

Sums every journal line of the posted entries per account code and checks
that the books balance, globally and entry by entry.

Amounts are compared as fixed-point values rounded to cents. Per-entry
checks read the stored totals directly instead of trusting the posting
rules, since rows can be altered by paths other than the Posting Engine.
"""

import csv
import io
import logging
from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from bizledger.app.core.config import settings
from bizledger.app.domain.ledger.repositories import LedgerRepository
from bizledger.app.models.ledger_enums import LedgerEntryStatus
from bizledger.app.schemas.ledger import LedgerEntryResponse, TrialBalanceReport, TrialBalanceRow
from bizledger.app.services.cache import CacheService

logger = logging.getLogger("bizledger.trial_balance")

CENT = Decimal("0.01")

TRIAL_BALANCE_CACHE_KEY = "ledger:trial_balance"


def money(value: Any) -> Decimal:
    """Round an amount to cents; missing amounts count as zero."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _posted(entries: Sequence[LedgerEntryResponse]) -> List[LedgerEntryResponse]:
    return [entry for entry in entries if entry.status == LedgerEntryStatus.POSTED.value]


def compute_trial_balance(entries: Sequence[LedgerEntryResponse]) -> List[TrialBalanceRow]:
    """Debit and credit totals per account code, balance = debit - credit, sorted by code."""
    totals: Dict[str, Dict[str, Decimal]] = defaultdict(lambda: {"debit": Decimal("0.00"), "credit": Decimal("0.00")})

    for entry in _posted(entries):
        for line in entry.entries:
            account = totals[line.account_code]
            account["debit"] += money(line.debit)
            account["credit"] += money(line.credit)

    return [
        TrialBalanceRow(
            account_code=code,
            total_debit=float(sums["debit"]),
            total_credit=float(sums["credit"]),
            balance=float(sums["debit"] - sums["credit"]),
        )
        for code, sums in sorted(totals.items())
    ]


def grand_totals(rows: Sequence[TrialBalanceRow]):
    total_debits = sum((money(row.total_debit) for row in rows), Decimal("0.00"))
    total_credits = sum((money(row.total_credit) for row in rows), Decimal("0.00"))
    return total_debits, total_credits


def is_balanced(rows: Sequence[TrialBalanceRow]) -> bool:
    """Grand total debits equal grand total credits, to the cent."""
    total_debits, total_credits = grand_totals(rows)
    return total_debits == total_credits


def unbalanced_entries(entries: Sequence[LedgerEntryResponse]) -> List[LedgerEntryResponse]:
    """Posted entries whose own stored totals disagree."""
    return [
        entry for entry in _posted(entries)
        if money(entry.total_debit) != money(entry.total_credit)
    ]


def build_report(entries: Sequence[LedgerEntryResponse]) -> TrialBalanceReport:
    rows = compute_trial_balance(entries)
    total_debits, total_credits = grand_totals(rows)
    report = TrialBalanceReport(
        trial_balance=rows,
        total_debits=float(total_debits),
        total_credits=float(total_credits),
        difference=float(abs(total_debits - total_credits)),
        is_balanced=total_debits == total_credits,
        unbalanced_entries=unbalanced_entries(entries),
        entry_count=len(_posted(entries)),
    )
    if not report.is_balanced or report.unbalanced_entries:
        logger.warning(
            "Ledger out of balance: difference=%.2f, unbalanced_entries=%d",
            report.difference, len(report.unbalanced_entries),
        )
    return report


def render_csv(report: TrialBalanceReport) -> str:
    """Spreadsheet export: one row per account, then the summary totals."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Account Code", "Total Debit", "Total Credit", "Balance"])
    for row in report.trial_balance:
        writer.writerow([
            row.account_code,
            f"{row.total_debit:.2f}",
            f"{row.total_credit:.2f}",
            f"{row.balance:.2f}",
        ])
    writer.writerow([])
    writer.writerow(["Total Debits", f"{report.total_debits:.2f}"])
    writer.writerow(["Total Credits", f"{report.total_credits:.2f}"])
    writer.writerow(["Difference", f"{report.difference:.2f}"])
    return buffer.getvalue()


class TrialBalanceService:

    @staticmethod
    async def get_report(db: AsyncSession, use_cache: bool = True, refresh: bool = False) -> TrialBalanceReport:
        """
        Trial balance over all posted entries, served from cache while fresh.

        `refresh` recomputes from the store and replaces the cached copy; use
        it to catch rows changed outside this service.
        """
        if use_cache and not refresh:
            cached = await CacheService.get(TRIAL_BALANCE_CACHE_KEY)
            if cached:
                return TrialBalanceReport.model_validate_json(cached)

        rows = await LedgerRepository(db).list_posted()
        entries = [LedgerEntryResponse.model_validate(row) for row in rows]
        report = build_report(entries)

        if use_cache:
            await CacheService.set(
                TRIAL_BALANCE_CACHE_KEY,
                report.model_dump_json(),
                ttl_seconds=settings.trial_balance_cache_ttl_seconds,
            )
        return report

    @staticmethod
    async def invalidate() -> None:
        await CacheService.delete(TRIAL_BALANCE_CACHE_KEY)
