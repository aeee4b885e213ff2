import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from movie_booking.api.v1 import routes_booking, routes_catalog, routes_health, routes_ledger, routes_show
from movie_booking.core.config import settings
from movie_booking.core.exceptions import BookingError, LedgerCorruptionError
from movie_booking.crud.ledger import crud_ledger
from movie_booking.db import session
from movie_booking.redis import close_redis
from movie_booking.services.ledger import AvailabilityLedger
from movie_booking.services.reservation import ReservationCoordinator


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.LOG_LEVEL)
    if settings.ENV == "development":
        await session.init_db()

    ledger = AvailabilityLedger()
    async with session.async_session_factory() as db:
        await ledger.load(db)
        ledger.replay(await crud_ledger.load_records(db))
    coordinator = ReservationCoordinator(ledger, session.async_session_factory)
    await coordinator.restore()
    app.state.ledger = ledger
    app.state.coordinator = coordinator
    yield
    await coordinator.shutdown()
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        description=settings.PROJECT_DESCRIPTION,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (routes_health, routes_catalog, routes_show, routes_booking, routes_ledger):
        app.include_router(router.router, prefix=settings.API_V1_PREFIX)

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, ex: BookingError):
        if isinstance(ex, LedgerCorruptionError):
            logger.critical(f"{request.method} {request.url.path}: {ex.message}\n{ex.stack_trace}")
        return JSONResponse(status_code=ex.status_code, content={"error": ex.message})

    @app.get("/")
    async def root():
        return {"message": "Movie booking engine is running"}

    return app


app = create_app()
