"""
Backfill Orchestrator tests.

Runs against the in-memory SQLite store: idempotent re-runs, dry runs,
per-record failure isolation, candidate filters and fetch failures.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from bizledger.app.core.exceptions import BackfillFetchError
from bizledger.app.domain.ledger.backfill_service import BackfillOrchestrator
from bizledger.app.domain.ledger.events import SaleEvent
from bizledger.app.domain.ledger.posting_engine import PostingEngine
from bizledger.app.domain.ledger.repositories import (
    BackfillLogRepository, ExpenseRepository, LedgerRepository
)
from bizledger.app.models.ledger_entry import LedgerEntry
from bizledger.app.models.ledger_enums import SourceType


async def entries_by_source(db_session):
    result = await db_session.execute(select(LedgerEntry))
    return {(e.source_type, e.source_id): e for e in result.scalars().all()}


@pytest.mark.asyncio
async def test_backfill_posts_every_candidate(db_session, seed):
    await seed.reference_events()

    result = await BackfillOrchestrator.for_session(db_session).run(batch_size=50)

    assert (result.processed, result.success, result.error, result.skipped) == (3, 3, 0, 0)
    assert [(d.type.value, d.id, d.status.value) for d in result.details] == [
        ("sale", "s1", "success"),
        ("payment", "p1", "success"),
        ("expense", "e1", "success"),
    ]

    posted = await entries_by_source(db_session)
    assert set(posted) == {("sale", "s1"), ("payment", "p1"), ("expense", "e1")}

    sale_entry = posted[("sale", "s1")]
    assert sale_entry.transaction_id == "s1"
    assert sale_entry.status == "posted"
    assert sale_entry.user_id == "u-1"
    assert sale_entry.total_debit == sale_entry.total_credit == 150.0
    assert [line["account_code"] for line in sale_entry.entries] == [
        "1100_accounts_receivable", "4000_sales_revenue"
    ]


@pytest.mark.asyncio
async def test_rerun_skips_everything(db_session, seed):
    await seed.reference_events()
    await seed.sale("s2", 20.0)
    orchestrator = BackfillOrchestrator.for_session(db_session)
    ledger = LedgerRepository(db_session)

    first = await orchestrator.run()
    count_after_first = await ledger.count()
    second = await orchestrator.run()

    assert first.success == 4
    assert second.success == 0
    assert second.skipped == second.processed == 4
    assert second.details == []
    assert await ledger.count() == count_after_first == 4
    assert second.batch_id != first.batch_id

    logs = await BackfillLogRepository(db_session).list_logs(batch_id=second.batch_id)
    assert len(logs) == 4
    assert {log.status for log in logs} == {"skipped"}
    assert {log.error_message for log in logs} == {"Entry already exists"}


@pytest.mark.asyncio
async def test_test_mode_writes_no_entries(db_session, seed):
    await seed.reference_events()
    ledger = LedgerRepository(db_session)
    before = await ledger.count()

    result = await BackfillOrchestrator.for_session(db_session).run(test_mode=True)

    assert result.success == 3
    assert await ledger.count() == before == 0

    # Dry runs still leave an audit trail
    logs = await BackfillLogRepository(db_session).list_logs(batch_id=result.batch_id)
    assert {log.status for log in logs} == {"success"}

    # and a real run afterwards still posts everything
    real = await BackfillOrchestrator.for_session(db_session).run()
    assert real.success == 3


@pytest.mark.asyncio
async def test_one_failed_insert_does_not_block_siblings(db_session, seed, mocker):
    for i in range(1, 6):
        await seed.sale(f"s{i}", 10.0 * i)
    original_insert = LedgerRepository.insert

    async def flaky_insert(self, candidate):
        if candidate.source_id == "s3":
            raise OperationalError("INSERT INTO ledger_entries", {}, Exception("connection reset"))
        return await original_insert(self, candidate)

    mocker.patch.object(LedgerRepository, "insert", new=flaky_insert)

    result = await BackfillOrchestrator.for_session(db_session).run(source_types=[SourceType.SALE])

    assert result.processed == 5
    assert result.error == 1
    assert result.success == 4
    assert result.skipped == 0

    failed = [d for d in result.details if d.status.value == "error"]
    assert [d.id for d in failed] == ["s3"]
    assert "connection reset" in failed[0].error

    posted = await entries_by_source(db_session)
    assert set(posted) == {("sale", f"s{i}") for i in (1, 2, 4, 5)}

    logs = await BackfillLogRepository(db_session).list_logs(batch_id=result.batch_id)
    error_logs = [log for log in logs if log.status == "error"]
    assert [log.source_id for log in error_logs] == ["s3"]
    assert "connection reset" in error_logs[0].error_message


@pytest.mark.asyncio
async def test_failed_record_is_posted_on_rerun(db_session, seed, mocker):
    await seed.sale("s1", 10.0)
    await seed.sale("s2", 20.0)
    original_insert = LedgerRepository.insert

    async def flaky_insert(self, candidate):
        if candidate.source_id == "s2":
            raise SQLAlchemyError("deadlock detected")
        return await original_insert(self, candidate)

    mocker.patch.object(LedgerRepository, "insert", new=flaky_insert)
    first = await BackfillOrchestrator.for_session(db_session).run()
    mocker.stopall()

    second = await BackfillOrchestrator.for_session(db_session).run()

    assert (first.success, first.error) == (1, 1)
    assert (second.success, second.skipped, second.error) == (1, 1, 0)
    assert set(await entries_by_source(db_session)) == {("sale", "s1"), ("sale", "s2")}


@pytest.mark.asyncio
async def test_concurrent_insert_counts_as_skipped(db_session, seed, mocker):
    """Another run posts the record between our duplicate check and our insert."""
    await seed.sale("s1", 150.0)
    original_exists = LedgerRepository.exists
    original_insert = LedgerRepository.insert
    raced = []

    async def racing_exists(self, transaction_id, source_type):
        if not raced:
            raced.append(transaction_id)
            await original_insert(self, PostingEngine().post(SaleEvent(id="s1", total=150.0)))
            return False
        return await original_exists(self, transaction_id, source_type)

    mocker.patch.object(LedgerRepository, "exists", new=racing_exists)

    result = await BackfillOrchestrator.for_session(db_session).run(source_types=[SourceType.SALE])

    assert raced == ["s1"]
    assert (result.processed, result.success, result.skipped, result.error) == (1, 0, 1, 0)
    assert len(await entries_by_source(db_session)) == 1


@pytest.mark.asyncio
async def test_candidate_filters(db_session, seed):
    await seed.sale("s-done", 10.0, status="completed")
    await seed.sale("s-open", 10.0, status="pending")
    await seed.payment("p-paid", 5.0, status="paid")
    await seed.payment("p-no-date", 5.0, status="paid", paid=False)
    await seed.payment("p-due", 5.0, status="pending", paid=False)
    await seed.expense("e-any", 3.0)

    result = await BackfillOrchestrator.for_session(db_session).run()

    assert sorted(d.id for d in result.details) == ["e-any", "p-paid", "s-done"]


@pytest.mark.asyncio
async def test_batch_size_limits_each_source_newest_first(db_session, seed):
    for i in range(1, 5):
        await seed.sale(f"s{i}", 1.0)
    for i in range(1, 5):
        await seed.expense(f"e{i}", 1.0)

    result = await BackfillOrchestrator.for_session(db_session).run(batch_size=2)

    assert [d.id for d in result.details] == ["s4", "s3", "e4", "e3"]


@pytest.mark.asyncio
async def test_source_type_order_is_respected(db_session, seed):
    await seed.reference_events()

    result = await BackfillOrchestrator.for_session(db_session).run(
        source_types=[SourceType.EXPENSE, SourceType.SALE]
    )

    assert [d.type.value for d in result.details] == ["expense", "sale"]


@pytest.mark.asyncio
async def test_empty_and_repeated_source_types(db_session, seed):
    await seed.reference_events()
    orchestrator = BackfillOrchestrator.for_session(db_session)

    nothing = await orchestrator.run(source_types=[])
    repeated = await orchestrator.run(
        source_types=[SourceType.PAYMENT, SourceType.SALE, SourceType.PAYMENT], test_mode=True
    )

    assert nothing.processed == 0
    assert await LedgerRepository(db_session).count() == 0
    assert [(d.type.value, d.id) for d in repeated.details] == [("payment", "p1"), ("sale", "s1")]


@pytest.mark.asyncio
async def test_invalid_amounts_are_reported_not_posted(db_session, seed):
    await seed.sale("s-ok", 10.0)
    await seed.sale("s-negative", -5.0)
    await seed.expense("e-zero", 0.0)
    await seed.expense("e-missing", None)

    result = await BackfillOrchestrator.for_session(db_session).run()

    assert result.success == 1
    assert result.error == 3
    errors = {d.id: d.error for d in result.details if d.status.value == "error"}
    assert set(errors) == {"s-negative", "e-zero", "e-missing"}
    assert "positive" in errors["s-negative"]
    assert set(await entries_by_source(db_session)) == {("sale", "s-ok")}


@pytest.mark.asyncio
async def test_fetch_failure_aborts_but_keeps_earlier_work(db_session, seed, mocker):
    await seed.reference_events()
    mocker.patch.object(
        ExpenseRepository, "list_recent",
        side_effect=OperationalError("SELECT expenditures", {}, Exception("relation does not exist")),
    )

    with pytest.raises(BackfillFetchError) as excinfo:
        await BackfillOrchestrator.for_session(db_session).run()

    assert excinfo.value.source_type == "expense"
    assert "relation does not exist" in excinfo.value.message
    partial = excinfo.value.partial_result
    assert (partial.processed, partial.success) == (2, 2)
    assert set(await entries_by_source(db_session)) == {("sale", "s1"), ("payment", "p1")}
