import asyncio
import logging

from movie_booking.db.session import async_session_factory, init_db
from movie_booking.schemas.catalog import CatalogDocument
from movie_booking.services.catalog_io import import_catalog


logger = logging.getLogger(__name__)

# PVR Nexus week of 25 April 2023
SAMPLE_CATALOG = {
    "cities": [
        {"id": 1, "name": "Mumbai", "state": "Maharashtra", "country": "India"},
        {"id": 2, "name": "Bengaluru", "state": "Karnataka", "country": "India"},
        {"id": 3, "name": "Delhi", "state": "Delhi", "country": "India"},
    ],
    "languages": [
        {"id": 1, "name": "Telugu"},
        {"id": 2, "name": "Hindi"},
        {"id": 3, "name": "English"},
        {"id": 4, "name": "Tamil"},
    ],
    "formats": [
        {"id": 1, "name": "2D"},
        {"id": 2, "name": "3D"},
        {"id": 3, "name": "IMAX 3D"},
        {"id": 4, "name": "4DX"},
    ],
    "movies": [
        {"id": 1, "title": "Dasara", "language_id": 1, "duration_mins": 165,
         "genre": "Action/Drama", "release_date": "2023-03-30", "rating": "UA"},
        {"id": 2, "title": "Kisi Ka Bhai Kisi Ki Jaan", "language_id": 2, "duration_mins": 146,
         "genre": "Action/Comedy", "release_date": "2023-04-21", "rating": "UA"},
        {"id": 3, "title": "Tu Jhoothi Main Makkaar", "language_id": 2, "duration_mins": 158,
         "genre": "Romantic Comedy", "release_date": "2023-03-08", "rating": "UA"},
        {"id": 4, "title": "Avatar: The Way of Water", "language_id": 3, "duration_mins": 192,
         "genre": "Sci-Fi/Action", "release_date": "2022-12-16", "rating": "UA"},
    ],
    "theatres": [
        {"id": 1, "name": "PVR Nexus", "address_line1": "Nexus Mall, Koramangala", "city_id": 2, "pincode": "560034"},
        {"id": 2, "name": "INOX Lido", "address_line1": "Lido Mall, Ulsoor", "city_id": 2, "pincode": "560042"},
        {"id": 3, "name": "PVR Phoenix", "address_line1": "Phoenix Mall, Nagar", "city_id": 1, "pincode": "400001"},
    ],
    "screens": [
        {"id": 1, "theatre_id": 1, "name": "Audi 1", "total_seats": 250, "format_id": 1},
        {"id": 2, "theatre_id": 1, "name": "Audi 2", "total_seats": 200, "format_id": 2},
        {"id": 3, "theatre_id": 1, "name": "Audi 3", "total_seats": 180, "format_id": 1},
        {"id": 4, "theatre_id": 1, "name": "Audi 4", "total_seats": 150, "format_id": 1},
        {"id": 5, "theatre_id": 2, "name": "Screen 1", "total_seats": 300, "format_id": 3},
    ],
    "shows": [
        {"id": 1, "movie_id": 1, "screen_id": 1, "language_id": 1, "format_id": 1,
         "run_start_date": "2023-04-25", "run_end_date": "2023-05-05", "ticket_price": "200.00",
         "timings": [{"id": 1, "start_time": "12:15:00", "available_seats": 120}]},
        {"id": 2, "movie_id": 2, "screen_id": 3, "language_id": 2, "format_id": 1,
         "run_start_date": "2023-04-25", "run_end_date": "2023-05-05", "ticket_price": "180.00",
         "timings": [
             {"id": 2, "start_time": "13:00:00", "available_seats": 100},
             {"id": 3, "start_time": "16:10:00", "available_seats": 80},
             {"id": 4, "start_time": "18:20:00", "available_seats": 60},
             {"id": 5, "start_time": "19:00:00", "available_seats": 45},
         ]},
        {"id": 3, "movie_id": 3, "screen_id": 4, "language_id": 2, "format_id": 1,
         "run_start_date": "2023-04-25", "run_end_date": "2023-05-05", "ticket_price": "180.00",
         "timings": [{"id": 6, "start_time": "13:15:00", "available_seats": 110}]},
        {"id": 4, "movie_id": 4, "screen_id": 2, "language_id": 3, "format_id": 2,
         "run_start_date": "2023-04-25", "run_end_date": "2023-05-05", "ticket_price": "350.00",
         "timings": [{"id": 7, "start_time": "13:20:00", "available_seats": 90}]},
    ],
}


def sample_catalog() -> CatalogDocument:
    return CatalogDocument.model_validate(SAMPLE_CATALOG)


async def seed():
    async with async_session_factory() as db:
        summary = await import_catalog(db, sample_catalog())
    logger.info(f"Sample catalog seeded: {summary.model_dump()}")


async def main():
    logging.basicConfig(level=logging.INFO)
    await init_db()
    await seed()


if __name__ == "__main__":
    asyncio.run(main())
