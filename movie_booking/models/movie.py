from datetime import date
from enum import Enum
from typing import Optional
from sqlalchemy import Date, ForeignKey, Integer, String, Text, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from movie_booking.db.base import Base
from movie_booking.models import TimestampMixin


class Rating(str, Enum):
    U = "U"
    UA = "UA"
    A = "A"
    S = "S"


class Movie(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    language_id: Mapped[int] = mapped_column(Integer, ForeignKey("language.id"), nullable=False)
    duration_mins: Mapped[int] = mapped_column(Integer, nullable=False)
    genre: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    release_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    rating: Mapped[Optional[Rating]] = mapped_column(
        SAEnum(Rating, name="rating_enum"), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    shows: Mapped[list["Show"]] = relationship(back_populates="movie")
