import logging

from sqlalchemy.ext.asyncio import AsyncSession

from movie_booking.crud.movie import crud_movie
from movie_booking.crud.reference import crud_reference
from movie_booking.crud.show import crud_show
from movie_booking.crud.theatre import crud_theatre
from movie_booking.schemas.catalog import (
    CatalogDocument,
    CatalogImportSummary,
    CityCreate,
    FormatCreate,
    LanguageCreate,
    MovieCreate,
    ScreenCreate,
    TheatreCreate,
)
from movie_booking.schemas.show import ShowCreate, ShowTimingCreate
from movie_booking.services.ledger import AvailabilityLedger


logger = logging.getLogger(__name__)


async def import_catalog(db: AsyncSession, document: CatalogDocument,
                         ledger: AvailabilityLedger | None = None) -> CatalogImportSummary:
    """
    Load a whole catalog in one transaction, parents before children.
    New timings are registered with the ledger once the transaction commits.
    """
    try:
        for city in document.cities:
            await crud_reference.create_city(db, city, commit=False)
        for language in document.languages:
            await crud_reference.create_language(db, language, commit=False)
        for fmt in document.formats:
            await crud_reference.create_format(db, fmt, commit=False)
        for movie in document.movies:
            await crud_movie.create_movie(db, movie, commit=False)
        for theatre in document.theatres:
            await crud_theatre.create_theatre(db, theatre, commit=False)
        screen_capacity = {}
        for screen in document.screens:
            created = await crud_theatre.create_screen(db, screen, commit=False)
            screen_capacity[created.id] = created.total_seats
        shows = []
        for show in document.shows:
            shows.append(await crud_show.create_show(db, show, commit=False))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    timings = 0
    for show in shows:
        for timing in show.timings:
            timings += 1
            if ledger is not None:
                total_seats = screen_capacity.get(show.screen_id)
                if total_seats is None:
                    screen = await crud_theatre.get_screen(db, show.screen_id)
                    total_seats = screen.total_seats
                ledger.register(timing.id, timing.available_seats, total_seats)

    summary = CatalogImportSummary(
        cities=len(document.cities),
        languages=len(document.languages),
        formats=len(document.formats),
        movies=len(document.movies),
        theatres=len(document.theatres),
        screens=len(document.screens),
        shows=len(shows),
        timings=timings,
    )
    logger.info(f"Imported catalog: {summary.model_dump()}")
    return summary


async def export_catalog(db: AsyncSession) -> CatalogDocument:
    shows = []
    for show in await crud_show.get_all_shows(db):
        shows.append(ShowCreate(
            id=show.id,
            movie_id=show.movie_id,
            screen_id=show.screen_id,
            language_id=show.language_id,
            format_id=show.format_id,
            run_start_date=show.run_start_date,
            run_end_date=show.run_end_date,
            ticket_price=show.ticket_price,
            timings=[
                ShowTimingCreate(id=timing.id, start_time=timing.start_time,
                                 available_seats=timing.available_seats)
                for timing in show.timings
            ],
        ))
    return CatalogDocument(
        cities=[CityCreate.model_validate(city, from_attributes=True)
                for city in await crud_reference.get_all_cities(db)],
        languages=[LanguageCreate.model_validate(language, from_attributes=True)
                   for language in await crud_reference.get_all_languages(db)],
        formats=[FormatCreate.model_validate(fmt, from_attributes=True)
                 for fmt in await crud_reference.get_all_formats(db)],
        movies=[MovieCreate.model_validate(movie, from_attributes=True)
                for movie in await crud_movie.get_all_movies(db)],
        theatres=[TheatreCreate.model_validate(theatre, from_attributes=True)
                  for theatre in await crud_theatre.get_all_theatres(db)],
        screens=[ScreenCreate.model_validate(screen, from_attributes=True)
                 for screen in await crud_theatre.get_all_screens(db)],
        shows=shows,
    )
