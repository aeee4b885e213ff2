import logging
from datetime import time
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import select

from movie_booking.core.exceptions import BookingValidationError, NotFoundError
from movie_booking.crud.movie import crud_movie
from movie_booking.crud.reference import crud_reference
from movie_booking.crud.theatre import crud_theatre
from movie_booking.models.movie import Movie
from movie_booking.models.show import Show, ShowTiming
from movie_booking.schemas.show import ShowCreate


logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def windows_overlap(a_start: time, a_mins: int, b_start: time, b_mins: int) -> bool:
    """True when two screenings of the given lengths collide, including ones running past midnight."""
    a = _minutes(a_start)
    for shift in (-MINUTES_PER_DAY, 0, MINUTES_PER_DAY):
        b = _minutes(b_start) + shift
        if a < b + b_mins and b < a + a_mins:
            return True
    return False


class CRUDShow:
    async def get_show(self, db: AsyncSession, show_id: int):
        result = await db.execute(select(Show)
                                  .where(Show.id == show_id)
                                  .options(selectinload(Show.timings)))
        return result.scalar_one_or_none()

    async def get_all_shows(self, db: AsyncSession):
        result = await db.execute(select(Show)
                                  .options(selectinload(Show.timings))
                                  .order_by(Show.id))
        return result.scalars().all()

    async def get_timing(self, db: AsyncSession, timing_id: int):
        result = await db.execute(select(ShowTiming).where(ShowTiming.id == timing_id))
        return result.scalar_one_or_none()

    async def create_show(self, db: AsyncSession, data: ShowCreate, commit: bool = True) -> Show:
        """Schedule a show together with its timings. Timings start with the screen's capacity unless given."""
        if data.run_start_date > data.run_end_date:
            raise BookingValidationError("Run start date must not be after run end date")
        if data.ticket_price < 0:
            raise BookingValidationError("Ticket price must not be negative")
        if not data.timings:
            raise BookingValidationError("A show needs at least one timing")
        start_times = [timing.start_time for timing in data.timings]
        if len(set(start_times)) != len(start_times):
            raise BookingValidationError("Show timings must have distinct start times")

        movie = await crud_movie.get_movie(db, data.movie_id)
        if movie is None:
            raise NotFoundError("Movie", data.movie_id)
        screen = await crud_theatre.get_screen(db, data.screen_id)
        if screen is None:
            raise NotFoundError("Screen", data.screen_id)
        if await crud_reference.get_language(db, data.language_id) is None:
            raise NotFoundError("Language", data.language_id)
        if await crud_reference.get_format(db, data.format_id) is None:
            raise NotFoundError("Format", data.format_id)

        timings = []
        for timing in data.timings:
            available = screen.total_seats if timing.available_seats is None else timing.available_seats
            if not 0 <= available <= screen.total_seats:
                raise BookingValidationError(
                    f"Available seats {available} at {timing.start_time} outside 0..{screen.total_seats}")
            fields = {"start_time": timing.start_time, "available_seats": available}
            if timing.id is not None:
                fields["id"] = timing.id
            timings.append(ShowTiming(**fields))

        await self._check_screen_free(db, data, movie)

        fields = data.model_dump(exclude={"id", "timings"})
        fields["ticket_price"] = Decimal(data.ticket_price).quantize(Decimal("0.01"))
        if data.id is not None:
            fields["id"] = data.id
        show = Show(**fields)
        show.timings = timings
        db.add(show)
        if commit:
            await db.commit()
        else:
            await db.flush()
        logger.info(f"Scheduled show {show.id} on screen {show.screen_id} with {len(timings)} timings")
        return show

    async def _check_screen_free(self, db: AsyncSession, data: ShowCreate, movie: Movie):
        result = await db.execute(
            select(Show)
            .where(Show.screen_id == data.screen_id)
            .where(Show.run_start_date <= data.run_end_date)
            .where(Show.run_end_date >= data.run_start_date)
            .options(selectinload(Show.timings), selectinload(Show.movie))
        )
        for other in result.scalars().all():
            for new_timing in data.timings:
                for old_timing in other.timings:
                    if windows_overlap(new_timing.start_time, movie.duration_mins,
                                       old_timing.start_time, other.movie.duration_mins):
                        raise BookingValidationError(
                            f"Screen {data.screen_id} is already booked by show {other.id} at "
                            f"{old_timing.start_time:%H:%M}, clashing with {new_timing.start_time:%H:%M}")


crud_show = CRUDShow()
