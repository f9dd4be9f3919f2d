import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis import RedisError

from .config import settings
from .errors import BookingError
from .redis_client import redis_client
from .routers import bookings, slots
from .services.bookings.cleanup import stale_pending_cleanup_loop

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    cleanup_task = None
    if settings.cleanup_interval_seconds > 0:
        cleanup_task = asyncio.create_task(stale_pending_cleanup_loop())

    yield

    if cleanup_task is not None:
        cleanup_task.cancel()
        await asyncio.gather(cleanup_task, return_exceptions=True)


app = FastAPI(title="Booking Core API", lifespan=lifespan)
app.include_router(slots.router)
app.include_router(bookings.router)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if exc.retryable:
        logger.warning(f"{request.method} {request.url.path} → {exc.code}: {exc.detail}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.get("/health")
def health():
    try:
        redis_ok = bool(redis_client.ping())
    except RedisError:
        redis_ok = False
    return {"redis": redis_ok}
