from uuid import UUID
from fastapi import APIRouter, Depends, Request
from redis.asyncio import Redis

from movie_booking.api.deps import get_coordinator
from movie_booking.core.idempotency import check_idempotency, save_idempotent_response
from movie_booking.redis import get_redis
from movie_booking.schemas.booking import ReservationRequest, ReservationResponse
from movie_booking.services.reservation import ReservationCoordinator

router = APIRouter(
    prefix="/reservations"
)


@router.post("/", response_model=ReservationResponse, status_code=201)
async def request_reservation(
        data: ReservationRequest,
        coordinator: ReservationCoordinator = Depends(get_coordinator)):
    handle = await coordinator.request(data.timing_id, data.seat_count)
    return ReservationResponse.model_validate(handle)


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
        reservation_id: UUID,
        coordinator: ReservationCoordinator = Depends(get_coordinator)):
    return ReservationResponse.model_validate(await coordinator.get(reservation_id))


@router.post("/{reservation_id}/confirm", response_model=ReservationResponse)
async def confirm_reservation(
        reservation_id: UUID,
        request: Request,
        coordinator: ReservationCoordinator = Depends(get_coordinator),
        redis: Redis = Depends(get_redis)):
    idem_key, cached, is_repeat = await check_idempotency(request, redis)
    if is_repeat:
        return cached
    handle = await coordinator.confirm(reservation_id)
    response = ReservationResponse.model_validate(handle)
    await save_idempotent_response(redis, idem_key, response.model_dump(mode="json"))
    return response


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_reservation(
        reservation_id: UUID,
        coordinator: ReservationCoordinator = Depends(get_coordinator)):
    handle = await coordinator.cancel(reservation_id)
    return ReservationResponse.model_validate(handle)
