from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from movie_booking.core.exceptions import BookingValidationError, NotFoundError
from movie_booking.crud.reference import crud_reference
from movie_booking.models.theatre import Screen, Theatre
from movie_booking.schemas.catalog import ScreenCreate, TheatreCreate


class CRUDTheatre:
    async def get_theatre(self, db: AsyncSession, theatre_id: int) -> Theatre | None:
        result = await db.execute(select(Theatre).where(Theatre.id == theatre_id))
        return result.scalar_one_or_none()

    async def get_all_theatres(self, db: AsyncSession):
        result = await db.execute(select(Theatre).order_by(Theatre.id))
        return result.scalars().all()

    async def create_theatre(self, db: AsyncSession, data: TheatreCreate, commit: bool = True):
        if await crud_reference.get_city(db, data.city_id) is None:
            raise NotFoundError("City", data.city_id)
        theatre = Theatre(**data.model_dump(exclude_none=True))
        db.add(theatre)
        if commit:
            await db.commit()
            await db.refresh(theatre)
        else:
            await db.flush()
        return theatre

    async def get_screen(self, db: AsyncSession, screen_id: int) -> Screen | None:
        result = await db.execute(select(Screen).where(Screen.id == screen_id))
        return result.scalar_one_or_none()

    async def get_all_screens(self, db: AsyncSession):
        result = await db.execute(select(Screen).order_by(Screen.id))
        return result.scalars().all()

    async def create_screen(self, db: AsyncSession, data: ScreenCreate, commit: bool = True):
        if data.total_seats <= 0:
            raise BookingValidationError("Screen total seats must be greater than 0")
        if await self.get_theatre(db, data.theatre_id) is None:
            raise NotFoundError("Theatre", data.theatre_id)
        if await crud_reference.get_format(db, data.format_id) is None:
            raise NotFoundError("Format", data.format_id)
        screen = Screen(**data.model_dump(exclude_none=True))
        db.add(screen)
        if commit:
            await db.commit()
            await db.refresh(screen)
        else:
            await db.flush()
        return screen


crud_theatre = CRUDTheatre()
