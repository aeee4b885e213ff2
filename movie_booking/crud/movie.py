from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from movie_booking.core.exceptions import BookingValidationError, NotFoundError
from movie_booking.crud.reference import crud_reference
from movie_booking.models.movie import Movie
from movie_booking.schemas.catalog import MovieCreate


class CRUDMovie:
    async def get_movie(self, db: AsyncSession, movie_id: int):
        result = await db.execute(select(Movie).where(Movie.id == movie_id))
        return result.scalar_one_or_none()

    async def get_all_movies(self, db: AsyncSession):
        result = await db.execute(select(Movie).order_by(Movie.id))
        return result.scalars().all()

    async def create_movie(self, db: AsyncSession, data: MovieCreate, commit: bool = True):
        if data.duration_mins <= 0:
            raise BookingValidationError("Movie duration must be greater than 0")
        if await crud_reference.get_language(db, data.language_id) is None:
            raise NotFoundError("Language", data.language_id)
        movie = Movie(**data.model_dump(exclude_none=True))
        db.add(movie)
        if commit:
            await db.commit()
            await db.refresh(movie)
        else:
            await db.flush()
        return movie


crud_movie = CRUDMovie()
