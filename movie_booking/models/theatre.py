from typing import Optional
from sqlalchemy import ForeignKey, String, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship
from movie_booking.db.base import Base
from movie_booking.models import TimestampMixin


class Theatre(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address_line1: Mapped[str] = mapped_column(String(255), nullable=False)
    address_line2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city_id: Mapped[int] = mapped_column(Integer, ForeignKey("city.id"), index=True, nullable=False)
    pincode: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    contact_number: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    screens: Mapped[list["Screen"]] = relationship(back_populates="theatre", cascade="all, delete-orphan")


class Screen(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    theatre_id: Mapped[int] = mapped_column(Integer, ForeignKey("theatre.id", ondelete="CASCADE"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    # screen's native format
    format_id: Mapped[int] = mapped_column(Integer, ForeignKey("format.id"), nullable=False)
    theatre: Mapped["Theatre"] = relationship(back_populates="screens")
    shows: Mapped[list["Show"]] = relationship(back_populates="screen", cascade="all, delete-orphan")
