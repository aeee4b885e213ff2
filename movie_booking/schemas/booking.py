from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict

from movie_booking.models.ledger_entry import LedgerReason
from movie_booking.models.reservation import ReservationStatus


class ReservationRequest(BaseModel):
    timing_id: int
    seat_count: int


class ReservationResponse(BaseModel):
    id: UUID
    timing_id: int
    seat_count: int
    status: ReservationStatus
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LedgerEntryResponse(BaseModel):
    id: UUID
    timing_id: int
    reservation_id: Optional[UUID] = None
    reason: LedgerReason
    delta: int
    balance_after: int
    sequence: int
    halts_timing: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReconcileRequest(BaseModel):
    available_seats: int
