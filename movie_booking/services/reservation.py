import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from movie_booking.core.config import get_settings
from movie_booking.core.exceptions import (
    BookingError,
    BookingValidationError,
    HoldExpiredError,
    InvalidStateError,
    LedgerCorruptionError,
    NotFoundError,
)
from movie_booking.crud.ledger import crud_ledger
from movie_booking.crud.reservation import crud_reservation
from movie_booking.models.reservation import TERMINAL_STATUSES, ReservationStatus
from movie_booking.services.ledger import AvailabilityLedger, LedgerRecord


logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class ReservationHandle:
    id: uuid.UUID
    timing_id: int
    seat_count: int
    status: ReservationStatus = ReservationStatus.REQUESTED
    expires_at: Optional[datetime] = None
    # every state change for this reservation happens under this lock
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    timer: Optional[asyncio.Task] = field(default=None, repr=False)


class ReservationCoordinator:
    """
    Drives each booking through REQUESTED -> HELD -> CONFIRMED, or
    HELD -> RELEASED (cancelled) / EXPIRED (hold timer elapsed).

    Seats are deducted when the hold is taken; RELEASED and EXPIRED hand
    them back to the ledger exactly once because the terminal transition is
    a check-and-set from HELD under the reservation's lock. Only live
    reservations stay in memory; finished ones are answered from the database.
    """

    def __init__(self, ledger: AvailabilityLedger, session_factory: async_sessionmaker[AsyncSession],
                 hold_seconds: Optional[float] = None, max_seats_per_request: Optional[int] = None):
        settings = get_settings()
        self._ledger = ledger
        self._session_factory = session_factory
        self.hold_seconds = settings.HOLD_DURATION_SECONDS if hold_seconds is None else hold_seconds
        self.max_seats_per_request = (
            settings.MAX_SEATS_PER_REQUEST if max_seats_per_request is None else max_seats_per_request)
        self._reservations: dict[uuid.UUID, ReservationHandle] = {}

    @property
    def active_count(self) -> int:
        return len(self._reservations)

    async def get(self, reservation_id: uuid.UUID) -> ReservationHandle:
        handle = self._reservations.get(reservation_id)
        if handle is not None:
            return handle
        row = await self._load(reservation_id)
        if row is None:
            raise NotFoundError("Reservation", reservation_id)
        return _handle_from_row(row)

    async def request(self, timing_id: int, seat_count: int) -> ReservationHandle:
        if not 1 <= seat_count <= self.max_seats_per_request:
            raise BookingValidationError(
                f"Seat count must be between 1 and {self.max_seats_per_request}, got {seat_count}")

        handle = ReservationHandle(id=uuid.uuid4(), timing_id=timing_id, seat_count=seat_count)
        self._reservations[handle.id] = handle
        async with handle.lock:
            try:
                record = await self._ledger.reserve(timing_id, seat_count, reservation_id=handle.id)
            except Exception:
                del self._reservations[handle.id]
                raise

            handle.status = ReservationStatus.HELD
            handle.expires_at = _now() + timedelta(seconds=self.hold_seconds)
            try:
                await self._persist(handle, record)
            except Exception as e:
                # give the seats back; the hold never became visible to the caller
                logger.error(f"Failed to persist hold {handle.id}: {e}", exc_info=True)
                handle.status = ReservationStatus.RELEASED
                del self._reservations[handle.id]
                await self._ledger.release(timing_id, seat_count, reservation_id=handle.id)
                raise BookingError("Failed to hold seats, please retry", stack_trace=True)

            handle.timer = asyncio.create_task(self._expire_after(handle.id, self.hold_seconds))
        logger.info(f"Reservation {handle.id} holds {seat_count} seats on timing {timing_id} "
                    f"until {handle.expires_at.isoformat()}")
        return handle

    async def confirm(self, reservation_id: uuid.UUID) -> ReservationHandle:
        handle = self._reservations.get(reservation_id)
        if handle is None:
            raise await self._settled_error(reservation_id, "confirm")
        async with handle.lock:
            if handle.status is ReservationStatus.EXPIRED:
                raise HoldExpiredError(reservation_id)
            if handle.status is not ReservationStatus.HELD:
                raise NotFoundError("Held reservation", reservation_id)
            if handle.expires_at is not None and handle.expires_at <= _now():
                # deadline passed before the timer got to run
                await self._release_hold(handle, ReservationStatus.EXPIRED)
                raise HoldExpiredError(reservation_id)

            handle.status = ReservationStatus.CONFIRMED
            try:
                await self._persist(handle, None)
            except Exception as e:
                # the row still says HELD, so the hold and its timer stay live
                logger.error(f"Failed to persist confirmation of {reservation_id}: {e}", exc_info=True)
                handle.status = ReservationStatus.HELD
                raise BookingError("Failed to confirm reservation, please retry", stack_trace=True)
            self._cancel_timer(handle)
            self._settle(handle)
        logger.info(f"Reservation {reservation_id} confirmed")
        return handle

    async def cancel(self, reservation_id: uuid.UUID) -> ReservationHandle:
        handle = self._reservations.get(reservation_id)
        if handle is None:
            raise await self._settled_error(reservation_id, "cancel")
        async with handle.lock:
            if handle.status is ReservationStatus.REQUESTED:
                # the request never reached HELD, nothing was deducted
                return handle
            if handle.status is not ReservationStatus.HELD:
                raise InvalidStateError(
                    f"Reservation {reservation_id} is {handle.status.value}, only held reservations can be cancelled")
            await self._release_hold(handle, ReservationStatus.RELEASED)
        logger.info(f"Reservation {reservation_id} cancelled")
        return handle

    async def expire(self, reservation_id: uuid.UUID) -> bool:
        """Hold-timer path. Returns False when the reservation already left HELD."""
        handle = self._reservations.get(reservation_id)
        if handle is None:
            return False
        async with handle.lock:
            if handle.status is not ReservationStatus.HELD:
                logger.debug(f"Ignoring late expiry for reservation {reservation_id} ({handle.status.value})")
                return False
            await self._release_hold(handle, ReservationStatus.EXPIRED)
        logger.info(f"Reservation {reservation_id} expired, {handle.seat_count} seats returned")
        return True

    async def restore(self) -> int:
        """Re-arm hold timers for reservations a previous process left in HELD."""
        async with self._session_factory() as db:
            rows = await crud_reservation.get_held_reservations(db)
        restored = 0
        for row in rows:
            if row.id in self._reservations:
                continue
            handle = _handle_from_row(row)
            self._reservations[handle.id] = handle
            expires_at = handle.expires_at
            delay = self.hold_seconds if expires_at is None else max(0.0, (expires_at - _now()).total_seconds())
            handle.timer = asyncio.create_task(self._expire_after(handle.id, delay))
            restored += 1
        if restored:
            logger.info(f"Restored {restored} held reservations")
        return restored

    async def shutdown(self):
        timers = []
        for handle in self._reservations.values():
            if handle.timer is not None:
                handle.timer.cancel()
                timers.append(handle.timer)
                handle.timer = None
        await asyncio.gather(*timers, return_exceptions=True)

    async def _expire_after(self, reservation_id: uuid.UUID, delay: float):
        await asyncio.sleep(delay)
        try:
            await self.expire(reservation_id)
        except Exception as e:
            logger.error(f"Failed to expire reservation {reservation_id}: {e}", exc_info=True)

    async def _settled_error(self, reservation_id: uuid.UUID, action: str) -> BookingError:
        """The error for acting on a reservation that is no longer live in this process."""
        row = await self._load(reservation_id)
        if row is None:
            return NotFoundError("Reservation", reservation_id)
        if action == "confirm":
            if row.status is ReservationStatus.EXPIRED:
                return HoldExpiredError(reservation_id)
            return NotFoundError("Held reservation", reservation_id)
        return InvalidStateError(
            f"Reservation {reservation_id} is {row.status.value}, only held reservations can be cancelled")

    async def _release_hold(self, handle: ReservationHandle, status: ReservationStatus):
        handle.status = status
        self._cancel_timer(handle)
        try:
            record = await self._ledger.release(handle.timing_id, handle.seat_count, reservation_id=handle.id)
        except LedgerCorruptionError as e:
            # keep the clamped entry and the halt across restarts
            await self._persist(handle, e.record)
            self._settle(handle)
            raise
        await self._persist(handle, record)
        self._settle(handle)

    def _settle(self, handle: ReservationHandle):
        if handle.status in TERMINAL_STATUSES:
            self._reservations.pop(handle.id, None)

    def _cancel_timer(self, handle: ReservationHandle):
        timer = handle.timer
        handle.timer = None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()

    async def _load(self, reservation_id: uuid.UUID):
        async with self._session_factory() as db:
            return await crud_reservation.get_reservation(db, reservation_id)

    async def _persist(self, handle: ReservationHandle, record: Optional[LedgerRecord]):
        async with self._session_factory() as db:
            if record is not None:
                await crud_ledger.append(db, record)
            await crud_reservation.save(db, handle)
            await db.commit()


def _handle_from_row(row) -> ReservationHandle:
    expires_at = row.expires_at
    if expires_at is not None and expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return ReservationHandle(
        id=row.id,
        timing_id=row.timing_id,
        seat_count=row.seat_count,
        status=row.status,
        expires_at=expires_at,
    )
