import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from movie_booking.core.exceptions import (
    BookingValidationError,
    InsufficientSeatsError,
    InvalidStateError,
    LedgerCorruptionError,
    NotFoundError,
)
from movie_booking.models.ledger_entry import LedgerReason
from movie_booking.models.show import Show, ShowTiming
from movie_booking.models.theatre import Screen


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerRecord:
    """Immutable journal line; also serves as the token handed back by reserve()."""
    timing_id: int
    reason: LedgerReason
    delta: int
    balance_after: int
    sequence: int
    reservation_id: Optional[uuid.UUID] = None
    # true for the clamped release that halted the timing
    halts_timing: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class _TimingCell:
    available: int
    total_seats: int
    sequence: int = 0
    corrupted: bool = False


class AvailabilityLedger:
    """
    Authoritative available-seat counters, one per show timing.

    Every counter mutation happens under that timing's own lock and touches
    memory only; persisting the resulting record is the caller's job once the
    lock has been released.
    """

    def __init__(self):
        self._cells: dict[int, _TimingCell] = {}
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._journal: list[LedgerRecord] = []

    def register(self, timing_id: int, available_seats: int, total_seats: int, sequence: int = 0,
                 corrupted: bool = False) -> None:
        if timing_id in self._cells:
            raise InvalidStateError(f"Show timing {timing_id} is already registered with the ledger")
        if total_seats <= 0:
            raise BookingValidationError(f"Screen capacity must be positive, got {total_seats}")
        if not 0 <= available_seats <= total_seats:
            raise BookingValidationError(
                f"Available seats {available_seats} outside 0..{total_seats} for show timing {timing_id}")
        self._cells[timing_id] = _TimingCell(
            available=available_seats, total_seats=total_seats, sequence=sequence, corrupted=corrupted)

    async def load(self, db: AsyncSession) -> int:
        """Register every show timing in the catalog, replacing whatever was loaded before."""
        result = await db.execute(
            select(ShowTiming.id, ShowTiming.available_seats,
                   ShowTiming.ledger_version, ShowTiming.ledger_corrupted, Screen.total_seats)
            .join(Show, ShowTiming.show_id == Show.id)
            .join(Screen, Show.screen_id == Screen.id)
        )
        self._cells.clear()
        count = 0
        for row in result.all():
            self.register(row.id, row.available_seats, row.total_seats,
                          sequence=row.ledger_version, corrupted=row.ledger_corrupted)
            count += 1
            if row.ledger_corrupted:
                logger.critical(f"Timing {row.id} is halted pending reconciliation")
        logger.info(f"Loaded {count} show timings into the availability ledger")
        return count

    def is_registered(self, timing_id: int) -> bool:
        return timing_id in self._cells

    def balance(self, timing_id: int) -> int:
        return self._cell(timing_id).available

    def capacity(self, timing_id: int) -> int:
        return self._cell(timing_id).total_seats

    def is_corrupted(self, timing_id: int) -> bool:
        return self._cell(timing_id).corrupted

    def entries(self, timing_id: Optional[int] = None) -> list[LedgerRecord]:
        if timing_id is None:
            return list(self._journal)
        return [record for record in self._journal if record.timing_id == timing_id]

    async def reserve(self, timing_id: int, count: int, reservation_id: Optional[uuid.UUID] = None) -> LedgerRecord:
        if count <= 0:
            raise BookingValidationError(f"Seat count must be positive, got {count}")
        cell = self._cell(timing_id)
        async with self._locks[timing_id]:
            self._ensure_healthy(timing_id, cell)
            if cell.available < count:
                raise InsufficientSeatsError(timing_id, count, cell.available)
            cell.available -= count
            record = self._append(timing_id, cell, LedgerReason.RESERVE, -count, reservation_id)
        logger.debug(f"Reserved {count} seats on timing {timing_id}, {record.balance_after} left")
        return record

    async def release(self, timing_id: int, count: int, reservation_id: Optional[uuid.UUID] = None) -> LedgerRecord:
        if count <= 0:
            raise BookingValidationError(f"Seat count must be positive, got {count}")
        cell = self._cell(timing_id)
        async with self._locks[timing_id]:
            self._ensure_healthy(timing_id, cell)
            overflow = cell.available + count - cell.total_seats
            if overflow > 0:
                applied = cell.total_seats - cell.available
                cell.available = cell.total_seats
                cell.corrupted = True
                record = self._append(timing_id, cell, LedgerReason.RELEASE, applied, reservation_id,
                                      halts_timing=True)
                logger.critical(
                    f"Release of {count} seats on timing {timing_id} would exceed capacity "
                    f"{cell.total_seats} by {overflow}; clamped and halted pending reconciliation "
                    f"(entry {record.id}, reservation {reservation_id})")
                raise LedgerCorruptionError(
                    timing_id, f"release of {count} seats exceeds capacity by {overflow}", record=record)
            cell.available += count
            record = self._append(timing_id, cell, LedgerReason.RELEASE, count, reservation_id)
        logger.debug(f"Released {count} seats on timing {timing_id}, {record.balance_after} left")
        return record

    async def reconcile(self, timing_id: int, available_seats: int) -> LedgerRecord:
        """Operator override after a corruption report: set the balance and resume mutations."""
        cell = self._cell(timing_id)
        if not 0 <= available_seats <= cell.total_seats:
            raise BookingValidationError(
                f"Available seats {available_seats} outside 0..{cell.total_seats} for show timing {timing_id}")
        async with self._locks[timing_id]:
            if not cell.corrupted:
                raise InvalidStateError(
                    f"Show timing {timing_id} is not halted, its balance only changes through reservations")
            delta = available_seats - cell.available
            cell.available = available_seats
            cell.corrupted = False
            record = self._append(timing_id, cell, LedgerReason.RECONCILE, delta, None)
        logger.warning(f"Timing {timing_id} reconciled to {available_seats} available seats")
        return record

    def replay(self, records: Iterable[LedgerRecord]) -> None:
        """Restore balances from a persisted journal; the highest sequence per timing wins."""
        latest: dict[int, LedgerRecord] = {}
        for record in records:
            current = latest.get(record.timing_id)
            if current is None or record.sequence > current.sequence:
                latest[record.timing_id] = record
        for timing_id, record in latest.items():
            cell = self._cell(timing_id)
            if record.sequence <= cell.sequence:
                continue
            if not 0 <= record.balance_after <= cell.total_seats:
                cell.corrupted = True
                logger.critical(
                    f"Journal balance {record.balance_after} for timing {timing_id} is outside 0..{cell.total_seats}")
                continue
            cell.available = record.balance_after
            cell.sequence = record.sequence
            if record.halts_timing:
                cell.corrupted = True

    def _cell(self, timing_id: int) -> _TimingCell:
        cell = self._cells.get(timing_id)
        if cell is None:
            raise NotFoundError("Show timing", timing_id)
        return cell

    def _ensure_healthy(self, timing_id: int, cell: _TimingCell) -> None:
        if cell.corrupted:
            raise LedgerCorruptionError(timing_id, "mutations halted until reconciled")

    def _append(self, timing_id: int, cell: _TimingCell, reason: LedgerReason, delta: int,
                reservation_id: Optional[uuid.UUID], halts_timing: bool = False) -> LedgerRecord:
        cell.sequence += 1
        record = LedgerRecord(
            timing_id=timing_id,
            reason=reason,
            delta=delta,
            balance_after=cell.available,
            sequence=cell.sequence,
            reservation_id=reservation_id,
            halts_timing=halts_timing,
        )
        self._journal.append(record)
        return record
