from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from movie_booking.api.deps import get_ledger, get_query_service
from movie_booking.core.config import ReadConsistency
from movie_booking.core.exceptions import NotFoundError
from movie_booking.crud.show import crud_show
from movie_booking.crud.theatre import crud_theatre
from movie_booking.db.session import get_db_session
from movie_booking.schemas.show import ShowCreate, ShowListing, ShowResponse
from movie_booking.services.ledger import AvailabilityLedger
from movie_booking.services.query import ShowQueryService


router = APIRouter()


@router.post("/shows", response_model=ShowResponse)
async def create_show(
        show: ShowCreate,
        db: AsyncSession = Depends(get_db_session),
        ledger: AvailabilityLedger = Depends(get_ledger)):
    created = await crud_show.create_show(db, show)
    screen = await crud_theatre.get_screen(db, created.screen_id)
    for timing in created.timings:
        ledger.register(timing.id, timing.available_seats, screen.total_seats)
    return created


@router.get("/shows/{show_id}", response_model=ShowResponse)
async def get_show(show_id: int, db: AsyncSession = Depends(get_db_session)):
    show = await crud_show.get_show(db, show_id)
    if show is None:
        raise NotFoundError("Show", show_id)
    return show


@router.get("/theatres/{theatre_id}/shows", response_model=list[ShowListing])
async def list_shows(
        theatre_id: int,
        on_date: date = Query(alias="date"),
        consistency: Optional[ReadConsistency] = None,
        db: AsyncSession = Depends(get_db_session),
        query_service: ShowQueryService = Depends(get_query_service)):
    return await query_service.list_shows(db, theatre_id, on_date, consistency=consistency)
