from datetime import datetime, timezone
from enum import Enum
from typing import Optional
import uuid
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Uuid, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column
from movie_booking.db.base import Base


class LedgerReason(str, Enum):
    RESERVE = "RESERVE"
    RELEASE = "RELEASE"
    RECONCILE = "RECONCILE"


class LedgerEntry(Base):
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    timing_id: Mapped[int] = mapped_column(Integer, ForeignKey("showtiming.id"), index=True, nullable=False)
    reservation_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    reason: Mapped[LedgerReason] = mapped_column(SAEnum(LedgerReason), nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    # the timing's available seats after this entry
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    halts_timing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(
        timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
