"""
Reversal Service (Domain Logic).

Cancels a posted entry by posting its mirror image. The original row is
left untouched; both stay posted and net to zero in the trial balance.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from bizledger.app.core.exceptions import (
    DuplicateLedgerEntryError, EntryAlreadyReversedError, ResourceNotFoundError
)
from bizledger.app.domain.ledger.posting_engine import PostingEngine
from bizledger.app.domain.ledger.repositories import LedgerRepository
from bizledger.app.models.ledger_entry import LedgerEntry
from bizledger.app.schemas.ledger import LedgerEntryResponse


class ReversalService:

    @staticmethod
    async def reverse_entry(db: AsyncSession, entry_id: str, reason: str) -> LedgerEntry:
        """
        Post the reversing entry for `entry_id`.
        
        Raises:
            ResourceNotFoundError: no such entry
            EntryAlreadyReversedError: the entry is itself a reversal, or was reversed before
        """
        ledger = LedgerRepository(db)
        original = await ledger.get(entry_id)
        if not original:
            raise ResourceNotFoundError("Ledger entry", entry_id)
        
        if (original.meta or {}).get("is_reversal"):
            raise EntryAlreadyReversedError(entry_id, "Reversal entries cannot be reversed")
        
        candidate = PostingEngine.reverse(LedgerEntryResponse.model_validate(original), reason)
        try:
            return await ledger.insert(candidate)
        except DuplicateLedgerEntryError as exc:
            raise EntryAlreadyReversedError(entry_id) from exc
