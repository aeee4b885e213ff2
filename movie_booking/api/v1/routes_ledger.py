from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from movie_booking.api.deps import get_ledger
from movie_booking.core.exceptions import NotFoundError
from movie_booking.crud.ledger import crud_ledger
from movie_booking.crud.show import crud_show
from movie_booking.db.session import get_db_session
from movie_booking.schemas.booking import LedgerEntryResponse, ReconcileRequest
from movie_booking.services.ledger import AvailabilityLedger


router = APIRouter(prefix="/ledger")


@router.get("/timings/{timing_id}/entries", response_model=list[LedgerEntryResponse])
async def list_ledger_entries(timing_id: int, db: AsyncSession = Depends(get_db_session)):
    if await crud_show.get_timing(db, timing_id) is None:
        raise NotFoundError("Show timing", timing_id)
    return await crud_ledger.list_entries(db, timing_id)


@router.post("/timings/{timing_id}/reconcile", response_model=LedgerEntryResponse)
async def reconcile_timing(
        timing_id: int,
        data: ReconcileRequest,
        db: AsyncSession = Depends(get_db_session),
        ledger: AvailabilityLedger = Depends(get_ledger)):
    record = await ledger.reconcile(timing_id, data.available_seats)
    await crud_ledger.append(db, record)
    await db.commit()
    return LedgerEntryResponse.model_validate(record)
