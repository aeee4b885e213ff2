from datetime import datetime, timezone
from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

from .reference import City, Language, Format
from .movie import Movie, Rating
from .theatre import Theatre, Screen
from .show import Show, ShowTiming
from .ledger_entry import LedgerEntry, LedgerReason
from .reservation import Reservation, ReservationStatus
