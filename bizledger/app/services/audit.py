"""
Audit trail for ledger administration.

Every backfill run and every reversal leaves one row, written after the
ledger change it describes has been committed.
"""

import logging
from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from bizledger.app.models.audit_log import AuditLog
from bizledger.app.schemas.auth import Principal

logger = logging.getLogger("bizledger.audit")


class AuditAction:
    LEDGER_BACKFILL_RUN = "LEDGER_BACKFILL_RUN"
    LEDGER_ENTRY_REVERSED = "LEDGER_ENTRY_REVERSED"


async def log_event(
    db: AsyncSession,
    action: str,
    target_id: Optional[str] = None,
    actor: Optional[Principal] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Append and commit one audit row.

    Args:
        action: One of the AuditAction constants
        target_id: Batch id or ledger entry id the action applies to
        actor: Authenticated caller, if any
        metadata: Counters or reasons, stored as JSON
    """
    audit_log = AuditLog(
        action=action,
        target_id=target_id,
        actor_id=actor.user_id if actor else None,
        actor_username=actor.username if actor else None,
        meta_data=metadata,
    )
    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    logger.info("Audit %s target=%s actor=%s", action, target_id, audit_log.actor_id)
    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    action: Optional[str] = None,
    target_id: Optional[str] = None,
    limit: int = 100,
) -> List[AuditLog]:
    """Most recent first."""
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
    if action:
        query = query.where(AuditLog.action == action)
    if target_id:
        query = query.where(AuditLog.target_id == target_id)

    result = await db.execute(query.limit(limit))
    return list(result.scalars().all())
