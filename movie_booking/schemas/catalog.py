from datetime import date
from typing import Optional
from pydantic import BaseModel, ConfigDict

from movie_booking.models.movie import Rating
from movie_booking.schemas.show import ShowCreate


class CityBase(BaseModel):
    name: str
    state: str
    country: str = "India"


class CityCreate(CityBase):
    id: Optional[int] = None


class CityResponse(CityBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


class LanguageCreate(BaseModel):
    id: Optional[int] = None
    name: str


class LanguageResponse(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class FormatCreate(BaseModel):
    id: Optional[int] = None
    name: str


class FormatResponse(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class MovieBase(BaseModel):
    title: str
    language_id: int
    duration_mins: int
    genre: Optional[str] = None
    release_date: Optional[date] = None
    rating: Optional[Rating] = None
    description: Optional[str] = None


class MovieCreate(MovieBase):
    id: Optional[int] = None


class MovieResponse(MovieBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


class TheatreBase(BaseModel):
    name: str
    address_line1: str
    address_line2: Optional[str] = None
    city_id: int
    pincode: Optional[str] = None
    contact_number: Optional[str] = None


class TheatreCreate(TheatreBase):
    id: Optional[int] = None


class TheatreResponse(TheatreBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


class ScreenBase(BaseModel):
    theatre_id: int
    name: str
    total_seats: int
    format_id: int


class ScreenCreate(ScreenBase):
    id: Optional[int] = None


class ScreenResponse(ScreenBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


class CatalogDocument(BaseModel):
    """Bulk import/export payload, listed in dependency order."""
    cities: list[CityCreate] = []
    languages: list[LanguageCreate] = []
    formats: list[FormatCreate] = []
    movies: list[MovieCreate] = []
    theatres: list[TheatreCreate] = []
    screens: list[ScreenCreate] = []
    shows: list[ShowCreate] = []


class CatalogImportSummary(BaseModel):
    cities: int
    languages: int
    formats: int
    movies: int
    theatres: int
    screens: int
    shows: int
    timings: int
