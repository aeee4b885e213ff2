from datetime import date, time
from decimal import Decimal
from sqlalchemy import Boolean, Date, ForeignKey, Integer, Numeric, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship
from movie_booking.db.base import Base
from movie_booking.models import TimestampMixin


class Show(Base, TimestampMixin):
    """A movie's engagement on one screen over a run of dates."""
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    movie_id: Mapped[int] = mapped_column(Integer, ForeignKey(
        "movie.id", ondelete="CASCADE"), nullable=False)
    screen_id: Mapped[int] = mapped_column(Integer, ForeignKey(
        "screen.id", ondelete="CASCADE"), index=True, nullable=False)
    # may differ from the movie's own language (dubbed print)
    language_id: Mapped[int] = mapped_column(Integer, ForeignKey("language.id"), nullable=False)
    format_id: Mapped[int] = mapped_column(Integer, ForeignKey("format.id"), nullable=False)
    run_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    run_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    ticket_price: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    movie: Mapped["Movie"] = relationship(back_populates="shows")
    screen: Mapped["Screen"] = relationship(back_populates="shows")
    timings: Mapped[list["ShowTiming"]] = relationship(
        back_populates="show", cascade="all, delete-orphan", order_by="ShowTiming.start_time")


class ShowTiming(Base, TimestampMixin):
    """One bookable slot of a show. available_seats is owned by the ledger."""
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    show_id: Mapped[int] = mapped_column(Integer, ForeignKey(
        "show.id", ondelete="CASCADE"), index=True, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    # sequence of the last ledger entry written back to this row
    ledger_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # set when a release overflowed capacity; cleared only by reconcile
    ledger_corrupted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    show: Mapped["Show"] = relationship(back_populates="timings")
