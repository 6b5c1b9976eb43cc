"""Bounded retry for transient datastore failures."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from app.core.errors import DatastoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL serialization failure / deadlock
RETRYABLE_PGCODES = {"40001", "40P01"}
TRANSIENT_MESSAGES = (
    "can't reach database server",
    "connection refused",
    "connection reset",
    "server closed the connection",
    "deadlock detected",
    "could not serialize access",
)


def _pgcode(exc: BaseException) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_transient_db_error(exc: BaseException) -> bool:
    """True for connection drops and timeouts; never for integrity or validation errors."""
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated or _pgcode(exc) in RETRYABLE_PGCODES:
            return True
        message = str(exc).lower()
        return any(fragment in message for fragment in TRANSIENT_MESSAGES)
    return isinstance(exc, (ConnectionError, TimeoutError, asyncio.TimeoutError))


async def retry_database_operation(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    delay: float = 1.0,
    on_retry: Optional[Callable[[], Awaitable[None]]] = None,
) -> T:
    """
    Run a datastore operation, retrying transient failures with linear backoff.

    Only idempotent units of work (a whole transaction that rolls back on
    failure) should be wrapped.

    Args:
        operation: Zero-argument coroutine factory
        max_attempts: Total attempts before giving up
        delay: Base delay in seconds; attempt n waits delay * n
        on_retry: Awaited before each retry (typically a session rollback)

    Raises:
        DatastoreUnavailableError: when every attempt failed transiently.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            if not is_transient_db_error(e):
                raise
            if attempt >= max_attempts:
                logger.error(
                    f"[PERSISTENCE] Datastore unavailable after {attempt} attempts - "
                    f"Error: {type(e).__name__}: {str(e)}"
                )
                raise DatastoreUnavailableError(str(e)) from e
            logger.warning(
                f"[PERSISTENCE] Datastore attempt {attempt} failed, retrying - "
                f"Error: {type(e).__name__}"
            )
            if on_retry is not None:
                await on_retry()
            await asyncio.sleep(delay * attempt)
