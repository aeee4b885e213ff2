from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from movie_booking.models.reservation import Reservation, ReservationStatus


class CRUDReservation:
    async def save(self, db: AsyncSession, handle):
        """Upsert the persisted copy of an in-memory reservation."""
        await db.merge(Reservation(
            id=handle.id,
            timing_id=handle.timing_id,
            seat_count=handle.seat_count,
            status=handle.status,
            expires_at=handle.expires_at,
        ))

    async def get_reservation(self, db: AsyncSession, reservation_id):
        return await db.get(Reservation, reservation_id)

    async def get_held_reservations(self, db: AsyncSession):
        result = await db.execute(select(Reservation)
                                  .where(Reservation.status == ReservationStatus.HELD)
                                  .order_by(Reservation.created_at))
        return result.scalars().all()


crud_reservation = CRUDReservation()
