"""
Ledger Repositories.

Store access for the ledger core, one class per entity, each bound to an
AsyncSession and injected into the services.

Candidate fetches return plain column snapshots (dicts) rather than ORM
instances: the backfill rolls the session back after a failed insert, and a
rollback expires every instance still attached to it.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select, desc, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bizledger.app.core.exceptions import DuplicateLedgerEntryError
from bizledger.app.models.sale import Sale
from bizledger.app.models.payment_schedule import PaymentSchedule
from bizledger.app.models.expenditure import Expenditure
from bizledger.app.models.ledger_entry import LedgerEntry
from bizledger.app.models.ledger_backfill_log import LedgerBackfillLog
from bizledger.app.models.ledger_enums import (
    SaleStatus, PaymentStatus, SourceType, BackfillStatus, LedgerEntryStatus
)
from bizledger.app.schemas.ledger import LedgerEntryCandidate

Snapshot = Dict[str, Any]


async def _snapshots(db: AsyncSession, stmt) -> List[Snapshot]:
    result = await db.execute(stmt)
    return [dict(row) for row in result.mappings().all()]


class SalesRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_completed(self, limit: int) -> List[Snapshot]:
        """Completed sales, most recent first."""
        stmt = (
            select(Sale.__table__)
            .where(Sale.status == SaleStatus.COMPLETED.value)
            .order_by(desc(Sale.date))
            .limit(limit)
        )
        return await _snapshots(self.db, stmt)


class PaymentRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_paid(self, limit: int) -> List[Snapshot]:
        """Paid installments with a paid date, most recently paid first."""
        stmt = (
            select(PaymentSchedule.__table__)
            .where(
                PaymentSchedule.status == PaymentStatus.PAID.value,
                PaymentSchedule.paid_date.is_not(None),
            )
            .order_by(desc(PaymentSchedule.paid_date))
            .limit(limit)
        )
        return await _snapshots(self.db, stmt)


class ExpenseRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_recent(self, limit: int) -> List[Snapshot]:
        """All expenditures regardless of status, most recent first."""
        stmt = select(Expenditure.__table__).order_by(desc(Expenditure.date)).limit(limit)
        return await _snapshots(self.db, stmt)


class LedgerRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists(self, transaction_id: str, source_type: SourceType) -> bool:
        """Fast-path duplicate check; the unique constraint is the authoritative guard."""
        try:
            result = await self.db.execute(
                select(LedgerEntry.id).where(
                    LedgerEntry.transaction_id == transaction_id,
                    LedgerEntry.source_type == SourceType(source_type).value,
                ).limit(1)
            )
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return result.scalar_one_or_none() is not None

    async def insert(self, candidate: LedgerEntryCandidate) -> LedgerEntry:
        """
        Persist and commit one entry.

        Raises:
            DuplicateLedgerEntryError: another writer already posted this (transaction_id, source_type)
            SQLAlchemyError: any other store failure (session rolled back)
        """
        entry = LedgerEntry(
            source_type=candidate.source_type.value,
            source_id=candidate.source_id,
            transaction_id=candidate.transaction_id,
            entries=[line.model_dump() for line in candidate.entries],
            total_debit=candidate.total_debit,
            total_credit=candidate.total_credit,
            status=candidate.status.value,
            balance_hash="",
            meta=candidate.meta,
            user_id=candidate.user_id,
        )
        self.db.add(entry)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self.exists(candidate.transaction_id, candidate.source_type):
                raise DuplicateLedgerEntryError(candidate.transaction_id, candidate.source_type.value)
            raise
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        await self.db.refresh(entry)
        return entry

    async def get(self, entry_id: str) -> Optional[LedgerEntry]:
        result = await self.db.execute(select(LedgerEntry).where(LedgerEntry.id == entry_id))
        return result.scalar_one_or_none()

    async def list_entries(
        self,
        source_type: Optional[SourceType] = None,
        limit: Optional[int] = None,
    ) -> List[LedgerEntry]:
        """Entries newest first, optionally filtered by source type."""
        query = select(LedgerEntry).order_by(desc(LedgerEntry.posted_at))
        if source_type:
            query = query.where(LedgerEntry.source_type == SourceType(source_type).value)
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_posted(self) -> List[LedgerEntry]:
        """Full scan of posted entries for the trial balance."""
        result = await self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.status == LedgerEntryStatus.POSTED.value)
            .order_by(desc(LedgerEntry.posted_at))
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        return (await self.db.execute(select(func.count(LedgerEntry.id)))).scalar() or 0


class BackfillLogRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(
        self,
        batch_id: str,
        source_type: SourceType,
        source_id: str,
        status: BackfillStatus,
        error_message: Optional[str] = None,
    ) -> LedgerBackfillLog:
        """Append and commit one log record; rolls back and re-raises on failure."""
        record = LedgerBackfillLog(
            batch_id=batch_id,
            source_type=SourceType(source_type).value,
            source_id=source_id,
            status=BackfillStatus(status).value,
            error_message=error_message,
        )
        self.db.add(record)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return record

    async def list_logs(self, batch_id: Optional[str] = None, limit: int = 100) -> List[LedgerBackfillLog]:
        query = select(LedgerBackfillLog).order_by(desc(LedgerBackfillLog.created_at), desc(LedgerBackfillLog.id))
        if batch_id:
            query = query.where(LedgerBackfillLog.batch_id == batch_id)
        query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
