"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import health, orders
from app.api import settings as settings_api
from app.api.webhooks import paystack as paystack_webhooks
from app.api.webhooks import stripe as stripe_webhooks
from app.core.config import settings
from app.core.dependencies import get_notification_fanout
from app.core.errors import (
    DatastoreUnavailableError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
    OrderValidationError,
)
from app.core.logging import setup_logging
from app.db.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()
    yield
    # Shutdown
    await get_notification_fanout().drain(settings.notification_drain_timeout_seconds)


app = FastAPI(
    title="Catering Orders",
    description="Order finalization for the catering storefront",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(orders.router, tags=["orders"])
app.include_router(settings_api.router, tags=["settings"])
app.include_router(stripe_webhooks.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(paystack_webhooks.router, prefix="/webhooks", tags=["webhooks"])


def format_validation_errors(exc: RequestValidationError) -> list:
    """Flatten pydantic errors into "path: message" strings."""
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append(f"{'.'.join(loc) or 'body'}: {message}")
    return details


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = format_validation_errors(exc)
    logger.warning(f"[VALIDATION] {request.url.path} rejected - {'; '.join(details)}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation error", "details": details},
    )


@app.exception_handler(OrderValidationError)
async def order_validation_handler(request: Request, exc: OrderValidationError):
    logger.warning(f"[VALIDATION] {request.url.path} rejected - {'; '.join(exc.details)}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": exc.message, "details": exc.details},
    )


@app.exception_handler(OrderNotFoundError)
async def not_found_handler(request: Request, exc: OrderNotFoundError):
    return JSONResponse(status_code=404, content={"success": False, "error": "Order not found"})


@app.exception_handler(InvalidStatusTransitionError)
async def status_transition_handler(request: Request, exc: InvalidStatusTransitionError):
    return JSONResponse(status_code=409, content={"success": False, "error": str(exc)})


@app.exception_handler(DatastoreUnavailableError)
async def datastore_unavailable_handler(request: Request, exc: DatastoreUnavailableError):
    logger.error(f"[PERSISTENCE] {request.url.path} failed, datastore unavailable")
    return JSONResponse(
        status_code=503,
        content={
            "success": False,
            "error": "Database connection error. Please try again in a moment.",
        },
    )


@app.get("/")
async def root():
    return {"message": "Catering Orders API", "version": "0.1.0"}
