from fastapi import Depends, Request
from redis.asyncio import Redis

from movie_booking.redis import get_redis
from movie_booking.services.ledger import AvailabilityLedger
from movie_booking.services.query import ShowQueryService
from movie_booking.services.reservation import ReservationCoordinator


def get_ledger(request: Request) -> AvailabilityLedger:
    return request.app.state.ledger


def get_coordinator(request: Request) -> ReservationCoordinator:
    return request.app.state.coordinator


def get_query_service(
        ledger: AvailabilityLedger = Depends(get_ledger),
        redis: Redis = Depends(get_redis)) -> ShowQueryService:
    return ShowQueryService(ledger, redis=redis)
