from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.db import base  # noqa: F401  (registers every model)
from app.api.routes import admin, bookings, payments, projects, time_slots
from app.core.config import ENABLE_SCHEDULER
from app.core.exceptions import BookingCoreError
from app.core.logging_config import get_logger
from app.scheduler import init_scheduler, shutdown_scheduler

logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if ENABLE_SCHEDULER:
        init_scheduler()
    yield
    shutdown_scheduler()


app = FastAPI(
    title="Wedding Booking Core API",
    version="1.0.0",
    description="Vendor booking lifecycle, venue dependencies and auto-cancellation",
    lifespan=lifespan,
)


# Request Logging Middleware
@app.middleware("http")
async def log_requests(request, call_next):
    logger.info(f"REQUEST: {request.method} {request.url}")

    try:
        response = await call_next(request)
        logger.info(f"RESPONSE: {response.status_code} {request.url}")
        return response

    except Exception as e:
        logger.error(f"ERROR: {request.url} -> {str(e)}")
        raise e


# Service errors -> JSON
@app.exception_handler(BookingCoreError)
async def booking_core_error_handler(request: Request, exc: BookingCoreError):
    logger.warning(f"{type(exc).__name__}: {request.method} {request.url} -> {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------- ROUTERS --------
app.include_router(bookings.router)
app.include_router(payments.router)
app.include_router(projects.router)
app.include_router(time_slots.router)
app.include_router(admin.router)


@app.get("/health", tags=["Root"])
def health():
    return {"status": "ok"}
