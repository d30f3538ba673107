# backend/app/main.py

import asyncio
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as SA_TimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import services  # noqa: F401  registers lifecycle event handlers
from .api import api_booking, api_booking_talent, api_contract, api_notification
from .core.config import settings, FRONTEND_ORIGINS
from .core.observability import setup_logging
from .database import Base, SessionLocal, engine
from .services import contract_service
from .utils import background_worker
from .utils.errors import LifecycleError
from .utils.status_logger import register_status_listeners

setup_logging()
register_status_listeners()
logger = logging.getLogger(__name__)

app = FastAPI(title="Talent Booking API", default_response_class=ORJSONResponse)

# Schema is owned by Alembic in deployed environments; create_all keeps a
# fresh dev/test database usable without running migrations.
Base.metadata.create_all(bind=engine)


# ─── CORS middleware (credentials-compatible, explicit allowlist) ─────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=FRONTEND_ORIGINS,
    allow_credentials="*" not in FRONTEND_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS origins set to: %s", FRONTEND_ORIGINS)


@app.middleware("http")
async def catch_exceptions(request: Request, call_next):
    """Return JSON responses for unexpected errors and log them."""
    try:
        response = await call_next(request)
    except StarletteHTTPException as exc:  # return the original status and detail
        logger.error(
            "HTTP error %s at %s: %s", exc.status_code, request.url.path, exc.detail
        )
        response = ORJSONResponse(
            status_code=exc.status_code, content={"detail": exc.detail}
        )
    except SA_TimeoutError as exc:  # DB pool timeout -> 503 to reduce retry storms
        logger.error("DB timeout at %s: %s", request.url.path, str(exc))
        response = ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Database busy, please retry"},
        )
    except Exception as exc:  # pragma: no cover - generic handler
        logger.exception("Unhandled error: %s", exc)
        response = ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )
    return response


@app.exception_handler(LifecycleError)
async def lifecycle_exception_handler(request: Request, exc: LifecycleError):
    """Map engine errors to the ``{"detail": {message, field_errors, code}}`` envelope."""
    logger.warning(
        "Lifecycle error %s at %s: %s", exc.code, request.url.path, exc.message
    )
    return ORJSONResponse(
        status_code=exc.status_code,
        content={
            "detail": {
                "message": exc.message,
                "field_errors": exc.field_errors,
                "code": exc.code,
            }
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return validation errors in the standard envelope and log them."""
    errors = exc.errors()
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    field_errors: dict[str, str] = {}
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field_errors[".".join(loc) or "body"] = err.get("type", "invalid")
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": {
                "message": "Validation failed",
                "field_errors": field_errors,
                "code": "validation_failed",
            }
        },
    )


@app.get("/healthz", tags=["health"])
def healthz():
    """Liveness plus a cheap DB round-trip."""
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except OperationalError as exc:
        logger.error("Health check DB ping failed: %s", exc)
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "db": "unavailable"},
        )
    return {"status": "ok", "db": "ok"}


api_prefix = settings.API_V1_STR  # usually "/api/v1"

app.include_router(api_booking.router, prefix=api_prefix)
app.include_router(api_booking_talent.router, prefix=api_prefix)
app.include_router(api_contract.router, prefix=api_prefix)
app.include_router(api_notification.router, prefix=api_prefix)


# ─── Background contract expiry ──────────────────────────────────────────────


def process_contract_expiration() -> list[int]:
    """Expire overdue sent contracts.

    Separated from the scheduler loop so the logic can be unit tested.
    """
    with SessionLocal() as db:
        return contract_service.expire_overdue_contracts(db)


async def expire_contracts_loop(interval_seconds: int) -> None:
    """Periodically expire overdue contracts.

    Reads and signing already expire contracts lazily; this loop only keeps
    listings accurate for contracts nobody looks at.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        delay = 5
        max_retries = 5
        for attempt in range(max_retries):
            try:
                expired = await asyncio.to_thread(process_contract_expiration)
                if expired:
                    logger.info("Expiry sweep expired %s contract(s)", len(expired))
                break
            except OperationalError as exc:  # pragma: no cover - transient DB outage
                logger.warning("Expiry sweep failed (attempt %s): %s", attempt + 1, exc)
                if attempt < max_retries - 1:
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, 60)
                    continue
                break
            except Exception as exc:  # pragma: no cover - log and continue
                logger.exception("Expiry sweep crashed: %s", exc)
                break


@app.on_event("startup")
async def start_background_tasks() -> None:
    """Launch background maintenance tasks."""
    interval = settings.CONTRACT_EXPIRY_SWEEP_SECONDS
    if interval > 0:
        asyncio.create_task(expire_contracts_loop(interval))
        logger.info("Contract expiry sweep every %ss", interval)


@app.on_event("shutdown")
def shutdown_background_worker() -> None:
    """Let queued notification emails drain before exit."""
    background_worker.wait_all(timeout=10)


# ─── A simple root check ─────────────────────────────────────────────────────
@app.get("/")
async def root():
    return {"message": "Welcome to the Talent Booking API"}
