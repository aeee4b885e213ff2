from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from movie_booking.models.ledger_entry import LedgerEntry
from movie_booking.models.show import ShowTiming
from movie_booking.services.ledger import LedgerRecord


class CRUDLedger:
    async def append(self, db: AsyncSession, record: LedgerRecord):
        """Store the journal line and write the balance back to its timing row."""
        db.add(LedgerEntry(
            id=record.id,
            timing_id=record.timing_id,
            reservation_id=record.reservation_id,
            reason=record.reason,
            delta=record.delta,
            balance_after=record.balance_after,
            sequence=record.sequence,
            halts_timing=record.halts_timing,
            created_at=record.created_at,
        ))
        # a write carrying an older sequence must not overwrite a newer balance
        await db.execute(
            update(ShowTiming)
            .where(ShowTiming.id == record.timing_id)
            .where(ShowTiming.ledger_version < record.sequence)
            .values(available_seats=record.balance_after, ledger_version=record.sequence,
                    ledger_corrupted=record.halts_timing)
        )

    async def list_entries(self, db: AsyncSession, timing_id: int):
        result = await db.execute(select(LedgerEntry)
                                  .where(LedgerEntry.timing_id == timing_id)
                                  .order_by(LedgerEntry.sequence))
        return result.scalars().all()

    async def load_records(self, db: AsyncSession) -> list[LedgerRecord]:
        result = await db.execute(select(LedgerEntry).order_by(LedgerEntry.timing_id, LedgerEntry.sequence))
        return [
            LedgerRecord(
                timing_id=entry.timing_id,
                reason=entry.reason,
                delta=entry.delta,
                balance_after=entry.balance_after,
                sequence=entry.sequence,
                reservation_id=entry.reservation_id,
                halts_timing=entry.halts_timing,
                id=entry.id,
                created_at=entry.created_at,
            )
            for entry in result.scalars().all()
        ]


crud_ledger = CRUDLedger()
