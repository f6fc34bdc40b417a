"""
Backfill Orchestrator (Domain Logic).

Posts ledger entries for historical sales, payments and expenses that do not
have one yet. Must be idempotent: re-running a backfill is the retry mechanism.

Flow per source type:
1. Fetch up to batch_size candidate records (newest first)
2. For each record, independently:
   a. Duplicate check on (transaction_id, source_type) -> skipped
   b. Build the entry with the Posting Engine
   c. Test mode: count and log, persist nothing
   d. Otherwise insert; a failed insert is logged and counted, never fatal

Records are processed one at a time. Two concurrent runs may both pass the
duplicate check for the same record; the store's unique constraint rejects
the second insert, which is then counted as skipped.
"""

import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from bizledger.app.core.exceptions import BackfillFetchError, DuplicateLedgerEntryError
from bizledger.app.domain.ledger.events import build_event, validate_event_amount
from bizledger.app.domain.ledger.posting_engine import PostingEngine
from bizledger.app.domain.ledger.repositories import (
    SalesRepository, PaymentRepository, ExpenseRepository,
    LedgerRepository, BackfillLogRepository, Snapshot
)
from bizledger.app.models.ledger_enums import SourceType, BackfillStatus
from bizledger.app.schemas.ledger import BackfillDetail, BackfillResponse

logger = logging.getLogger("bizledger.backfill")

DUPLICATE_MESSAGE = "Entry already exists"

ALL_SOURCE_TYPES = (SourceType.SALE, SourceType.PAYMENT, SourceType.EXPENSE)


class BackfillOrchestrator:

    def __init__(
        self,
        sales: SalesRepository,
        payments: PaymentRepository,
        expenses: ExpenseRepository,
        ledger: LedgerRepository,
        logs: BackfillLogRepository,
        engine: Optional[PostingEngine] = None,
    ):
        self.ledger = ledger
        self.logs = logs
        self.engine = engine or PostingEngine()
        self._fetchers = {
            SourceType.SALE: sales.list_completed,
            SourceType.PAYMENT: payments.list_paid,
            SourceType.EXPENSE: expenses.list_recent,
        }

    @classmethod
    def for_session(cls, db, engine: Optional[PostingEngine] = None) -> "BackfillOrchestrator":
        """Wire the orchestrator to SQLAlchemy repositories sharing one session."""
        return cls(
            sales=SalesRepository(db),
            payments=PaymentRepository(db),
            expenses=ExpenseRepository(db),
            ledger=LedgerRepository(db),
            logs=BackfillLogRepository(db),
            engine=engine,
        )

    async def run(
        self,
        batch_size: int = 50,
        test_mode: bool = False,
        source_types: Optional[Iterable[SourceType]] = None,
    ) -> BackfillResponse:
        """
        Run one backfill batch.

        Args:
            batch_size: Maximum records fetched per source type
            test_mode: Compute and log entries without writing them
            source_types: Source types to process, in order (None: all three)

        Returns:
            Aggregate counters and the per-record trace

        Raises:
            BackfillFetchError: if a candidate query fails; earlier records stay posted
        """
        if source_types is None:
            source_types = ALL_SOURCE_TYPES
        # An empty list processes nothing; repeats are processed once
        requested = list(dict.fromkeys(SourceType(t) for t in source_types))
        result = BackfillResponse(batch_id=str(uuid.uuid4()))

        logger.info(
            "Starting backfill batch %s, test_mode=%s, source_types=%s",
            result.batch_id, test_mode, [t.value for t in requested],
        )

        for source_type in requested:
            try:
                records = await self._fetchers[source_type](batch_size)
            except SQLAlchemyError as exc:
                logger.error("Backfill batch %s: fetching %s records failed: %s", result.batch_id, source_type.value, exc)
                raise BackfillFetchError(source_type.value, str(exc), partial_result=result) from exc

            for record in records:
                await self._process_record(result, source_type, record, test_mode)

        logger.info(
            "Backfill batch %s complete: processed=%d success=%d error=%d skipped=%d",
            result.batch_id, result.processed, result.success, result.error, result.skipped,
        )
        return result

    async def _process_record(
        self,
        result: BackfillResponse,
        source_type: SourceType,
        record: Snapshot,
        test_mode: bool,
    ) -> None:
        result.processed += 1
        source_id = str(record.get("id"))

        try:
            if await self.ledger.exists(source_id, source_type):
                await self._skip(result, source_type, source_id)
                return

            event = build_event(source_type, record)
            validate_event_amount(event)
            candidate = self.engine.post(event)

            if not test_mode:
                await self.ledger.insert(candidate)

            await self.logs.append(result.batch_id, source_type, source_id, BackfillStatus.SUCCESS)
            result.success += 1
            result.details.append(BackfillDetail(type=source_type, id=source_id, status=BackfillStatus.SUCCESS))
        except DuplicateLedgerEntryError:
            # Lost the race against a concurrent run
            await self._skip(result, source_type, source_id)
        except Exception as exc:
            await self._fail(result, source_type, source_id, exc)

    async def _skip(self, result: BackfillResponse, source_type: SourceType, source_id: str) -> None:
        try:
            await self.logs.append(
                result.batch_id, source_type, source_id, BackfillStatus.SKIPPED, DUPLICATE_MESSAGE
            )
        except SQLAlchemyError as exc:
            await self._fail(result, source_type, source_id, exc)
            return
        result.skipped += 1

    async def _fail(self, result: BackfillResponse, source_type: SourceType, source_id: str, exc: Exception) -> None:
        message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
        result.error += 1
        result.details.append(
            BackfillDetail(type=source_type, id=source_id, status=BackfillStatus.ERROR, error=message)
        )
        logger.error("Error processing %s %s: %s", source_type.value, source_id, message)

        try:
            await self.logs.append(
                result.batch_id, source_type, source_id, BackfillStatus.ERROR, message
            )
        except SQLAlchemyError:
            logger.exception("Could not write backfill error log for %s %s", source_type.value, source_id)
