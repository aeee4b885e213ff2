import logging
from datetime import date
from typing import Optional

from pydantic import TypeAdapter
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from movie_booking.core.config import ReadConsistency, get_settings
from movie_booking.core.exceptions import NotFoundError
from movie_booking.crud.theatre import crud_theatre
from movie_booking.models.movie import Movie
from movie_booking.models.reference import Format, Language
from movie_booking.models.show import Show, ShowTiming
from movie_booking.models.theatre import Screen, Theatre
from movie_booking.schemas.show import ShowListing
from movie_booking.services.ledger import AvailabilityLedger


logger = logging.getLogger(__name__)

SHOW_TIME_FORMAT = "%I:%M %p"

_listings_adapter = TypeAdapter(list[ShowListing])


class ShowQueryService:
    """
    Read-only projections over the catalog.

    STRONG reads overlay the live ledger balance on every row. RELAXED reads
    take the balance last written back to the timing row and may serve a
    cached copy for a few seconds, so availability can lag behind bookings.
    """

    def __init__(self, ledger: AvailabilityLedger, redis: Optional[Redis] = None,
                 consistency: Optional[ReadConsistency] = None, cache_ttl: Optional[int] = None):
        settings = get_settings()
        self._ledger = ledger
        self._redis = redis
        self.consistency = settings.QUERY_CONSISTENCY if consistency is None else consistency
        self.cache_ttl = settings.QUERY_CACHE_TTL_SECONDS if cache_ttl is None else cache_ttl

    async def list_shows(self, db: AsyncSession, theatre_id: int, on_date: date,
                         consistency: Optional[ReadConsistency] = None) -> list[ShowListing]:
        consistency = self.consistency if consistency is None else ReadConsistency(consistency)
        if consistency is ReadConsistency.RELAXED and self._redis is not None:
            cached = await self._redis.get(self._cache_key(theatre_id, on_date))
            if cached:
                return _listings_adapter.validate_json(cached)

        if await crud_theatre.get_theatre(db, theatre_id) is None:
            raise NotFoundError("Theatre", theatre_id)

        stmt = (select(
            ShowTiming.id.label("timing_id"),
            Movie.title.label("movie_title"),
            Language.name.label("language"),
            Format.name.label("format"),
            Screen.name.label("screen"),
            ShowTiming.start_time,
            ShowTiming.available_seats,
            Show.ticket_price
        )
            .select_from(ShowTiming)
            .join(Show, ShowTiming.show_id == Show.id)
            .join(Movie, Show.movie_id == Movie.id)
            .join(Screen, Show.screen_id == Screen.id)
            .join(Theatre, Screen.theatre_id == Theatre.id)
            .join(Language, Show.language_id == Language.id)
            .join(Format, Show.format_id == Format.id)
            .where(Theatre.id == theatre_id)
            .where(Show.run_start_date <= on_date)
            .where(Show.run_end_date >= on_date)
            .order_by(Movie.title, ShowTiming.start_time))
        result = await db.execute(stmt)

        listings = []
        for row in result.mappings().all():
            available = row["available_seats"]
            if consistency is ReadConsistency.STRONG and self._ledger.is_registered(row["timing_id"]):
                available = self._ledger.balance(row["timing_id"])
            listings.append(ShowListing(
                timing_id=row["timing_id"],
                movie_title=row["movie_title"],
                language=row["language"],
                format=row["format"],
                screen=row["screen"],
                show_time=row["start_time"].strftime(SHOW_TIME_FORMAT),
                available_seats=available,
                ticket_price=row["ticket_price"],
            ))

        if consistency is ReadConsistency.RELAXED and self._redis is not None:
            await self._redis.set(self._cache_key(theatre_id, on_date),
                                  _listings_adapter.dump_json(listings), ex=self.cache_ttl)
        return listings

    def _cache_key(self, theatre_id: int, on_date: date) -> str:
        return f"shows:theatre:{theatre_id}:date:{on_date.isoformat()}"
