import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from movie_booking.core.exceptions import BookingValidationError
from movie_booking.models.reference import City, Format, Language
from movie_booking.schemas.catalog import CityCreate, FormatCreate, LanguageCreate


logger = logging.getLogger(__name__)


class CRUDReference:
    """Cities, languages and formats: created once, read everywhere."""

    async def create_city(self, db: AsyncSession, data: CityCreate, commit: bool = True) -> City:
        city = City(**data.model_dump(exclude_none=True))
        db.add(city)
        await self._flush(db, commit, f"city {data.name}")
        return city

    async def create_language(self, db: AsyncSession, data: LanguageCreate, commit: bool = True) -> Language:
        language = Language(**data.model_dump(exclude_none=True))
        db.add(language)
        await self._flush(db, commit, f"language {data.name}")
        return language

    async def create_format(self, db: AsyncSession, data: FormatCreate, commit: bool = True) -> Format:
        fmt = Format(**data.model_dump(exclude_none=True))
        db.add(fmt)
        await self._flush(db, commit, f"format {data.name}")
        return fmt

    async def get_city(self, db: AsyncSession, city_id: int) -> City | None:
        return await db.get(City, city_id)

    async def get_language(self, db: AsyncSession, language_id: int) -> Language | None:
        return await db.get(Language, language_id)

    async def get_format(self, db: AsyncSession, format_id: int) -> Format | None:
        return await db.get(Format, format_id)

    async def get_all_cities(self, db: AsyncSession):
        result = await db.execute(select(City).order_by(City.id))
        return result.scalars().all()

    async def get_all_languages(self, db: AsyncSession):
        result = await db.execute(select(Language).order_by(Language.id))
        return result.scalars().all()

    async def get_all_formats(self, db: AsyncSession):
        result = await db.execute(select(Format).order_by(Format.id))
        return result.scalars().all()

    async def _flush(self, db: AsyncSession, commit: bool, what: str):
        try:
            if commit:
                await db.commit()
            else:
                await db.flush()
        except IntegrityError as e:
            logger.error(f"Failed to create {what}: {e}")
            await db.rollback()
            raise BookingValidationError(f"Could not create {what}: duplicate or invalid reference")


crud_reference = CRUDReference()
