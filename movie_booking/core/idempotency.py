import json
from redis.asyncio import Redis
from fastapi import Request

from movie_booking.core.config import get_settings
from movie_booking.core.exceptions import BookingValidationError

IDEMPOTENCY_HEADER = "X-Idempotency-Key"


async def check_idempotency(request: Request, redis: Redis):
    idem_key = request.headers.get(IDEMPOTENCY_HEADER)
    if not idem_key:
        raise BookingValidationError(f"Missing {IDEMPOTENCY_HEADER} header")
    cached = await redis.get(f"idempotency:{idem_key}")
    if cached:
        return idem_key, json.loads(cached), True
    return idem_key, None, False


async def save_idempotent_response(redis: Redis, idem_key: str, payload: dict):
    await redis.set(f"idempotency:{idem_key}", json.dumps(payload),
                    ex=get_settings().IDEMPOTENCY_TTL_SECONDS)
