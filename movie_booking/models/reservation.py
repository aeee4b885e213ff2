from datetime import datetime
from enum import Enum
from typing import Optional
import uuid
from sqlalchemy import DateTime, ForeignKey, Integer, Uuid, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column
from movie_booking.db.base import Base
from movie_booking.models import TimestampMixin


class ReservationStatus(str, Enum):
    REQUESTED = "REQUESTED"
    HELD = "HELD"
    CONFIRMED = "CONFIRMED"
    RELEASED = "RELEASED"
    EXPIRED = "EXPIRED"


TERMINAL_STATUSES = frozenset({
    ReservationStatus.CONFIRMED,
    ReservationStatus.RELEASED,
    ReservationStatus.EXPIRED,
})


class Reservation(Base, TimestampMixin):
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    timing_id: Mapped[int] = mapped_column(Integer, ForeignKey("showtiming.id"), index=True, nullable=False)
    seat_count: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        SAEnum(ReservationStatus), nullable=False, default=ReservationStatus.REQUESTED)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
