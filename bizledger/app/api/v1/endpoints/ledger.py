"""
Ledger API Endpoints.

Backfill runs, ledger entries, reversals and the trial balance report.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from bizledger.app.core.exceptions import BackfillFetchError
from bizledger.app.core.guards import admin_only, ledger_readers, any_role
from bizledger.app.db.session import get_db
from bizledger.app.domain.ledger.accounts import CHART_OF_ACCOUNTS
from bizledger.app.domain.ledger.backfill_service import BackfillOrchestrator
from bizledger.app.domain.ledger.repositories import BackfillLogRepository, LedgerRepository
from bizledger.app.domain.ledger.reversal_service import ReversalService
from bizledger.app.domain.ledger.trial_balance import TrialBalanceService, render_csv
from bizledger.app.models.ledger_enums import SourceType
from bizledger.app.schemas.ledger import (
    AccountResponse, AuditLogResponse, BackfillLogResponse, BackfillRequest, BackfillResponse,
    LedgerEntryResponse, ReverseEntryRequest, TrialBalanceReport
)
from bizledger.app.schemas.auth import Principal
from bizledger.app.services.audit import get_audit_trail, log_event, AuditAction

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.post("/backfill", response_model=BackfillResponse)
async def run_backfill(
    request: BackfillRequest,
    current_user: Principal = Depends(admin_only),
    db: AsyncSession = Depends(get_db)
):
    """
    Post ledger entries for completed sales, paid installments and expenses
    that have none yet.

    Per-record failures are reported in the counters. A failed candidate
    query aborts the run with 500 {"error": ...}.
    """
    orchestrator = BackfillOrchestrator.for_session(db)
    try:
        result = await orchestrator.run(
            batch_size=request.batch_size,
            test_mode=request.test_mode,
            source_types=request.source_types,
        )
    except BackfillFetchError as exc:
        if exc.partial_result is not None and exc.partial_result.success and not request.test_mode:
            await TrialBalanceService.invalidate()
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    if result.success and not request.test_mode:
        await TrialBalanceService.invalidate()

    await log_event(
        db=db,
        action=AuditAction.LEDGER_BACKFILL_RUN,
        target_id=result.batch_id,
        actor=current_user,
        metadata={
            "test_mode": request.test_mode,
            "processed": result.processed,
            "success": result.success,
            "error": result.error,
            "skipped": result.skipped,
        }
    )

    return result


@router.get("/backfill/logs", response_model=List[BackfillLogResponse])
async def list_backfill_logs(
    batch_id: Optional[str] = Query(None, description="Restrict to one batch"),
    limit: int = Query(100, ge=1, le=1000),
    current_user: Principal = Depends(ledger_readers),
    db: AsyncSession = Depends(get_db)
):
    """List backfill log records, newest first."""
    return await BackfillLogRepository(db).list_logs(batch_id=batch_id, limit=limit)


@router.get("/entries", response_model=List[LedgerEntryResponse])
async def list_ledger_entries(
    source_type: Optional[SourceType] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    current_user: Principal = Depends(ledger_readers),
    db: AsyncSession = Depends(get_db)
):
    """List ledger entries, newest first."""
    return await LedgerRepository(db).list_entries(source_type=source_type, limit=limit)


@router.post("/entries/{entry_id}/reverse", response_model=LedgerEntryResponse, status_code=201)
async def reverse_ledger_entry(
    body: ReverseEntryRequest,
    entry_id: str = Path(..., description="Ledger entry ID"),
    current_user: Principal = Depends(admin_only),
    db: AsyncSession = Depends(get_db)
):
    """Post a reversing entry for a posted entry."""
    reversal = await ReversalService.reverse_entry(db, entry_id, body.reason)
    await TrialBalanceService.invalidate()

    await log_event(
        db=db,
        action=AuditAction.LEDGER_ENTRY_REVERSED,
        target_id=entry_id,
        actor=current_user,
        metadata={
            "reversal_entry_id": reversal.id,
            "reason": body.reason,
        }
    )

    return reversal


@router.get("/trial-balance", response_model=TrialBalanceReport)
async def get_trial_balance(
    refresh: bool = Query(False, description="Recompute from stored entries instead of the cached report"),
    current_user: Principal = Depends(ledger_readers),
    db: AsyncSession = Depends(get_db)
):
    """Per-account debit/credit totals with global and per-entry balance checks."""
    return await TrialBalanceService.get_report(db, refresh=refresh)


@router.get("/trial-balance/export")
async def export_trial_balance(
    refresh: bool = Query(False, description="Recompute from stored entries instead of the cached report"),
    current_user: Principal = Depends(ledger_readers),
    db: AsyncSession = Depends(get_db)
):
    """Download the trial balance as CSV."""
    report = await TrialBalanceService.get_report(db, refresh=refresh)
    filename = f"trial-balance-{date.today().isoformat()}.csv"
    return Response(
        content=render_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/accounts", response_model=List[AccountResponse])
async def list_accounts(
    current_user: Principal = Depends(any_role),
):
    """The fixed chart of accounts."""
    return CHART_OF_ACCOUNTS


@router.get("/audit", response_model=List[AuditLogResponse])
async def list_audit_trail(
    action: Optional[str] = Query(None, description="e.g. LEDGER_ENTRY_REVERSED"),
    target_id: Optional[str] = Query(None, description="Batch id or ledger entry id"),
    limit: int = Query(100, ge=1, le=1000),
    current_user: Principal = Depends(admin_only),
    db: AsyncSession = Depends(get_db)
):
    """Backfill runs and reversals, newest first."""
    return await get_audit_trail(db, action=action, target_id=target_id, limit=limit)
