"""Retry logic for transient database failures during import commits.

Retries only on dropped connections and operational errors.
Does NOT retry on integrity, data or programming errors.
"""

import logging
from typing import Callable, List, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CommitRetryExhaustedError(RuntimeError):
    """Raised when every attempt failed with a transient database error.

    Attributes:
        attempts: Total number of attempts made (initial + retries).
        last_error: The database error from the final attempt.
        history: Database errors from every failed attempt.
    """

    def __init__(
        self,
        attempts: int,
        last_error: SQLAlchemyError,
        history: List[SQLAlchemyError],
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.history = history
        super().__init__(
            f"Database commit failed after {attempts} attempt(s). "
            f"Last error: {last_error}"
        )


def is_transient_db_error(exc: BaseException) -> bool:
    """True for errors worth retrying on a fresh transaction."""
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


def run_with_retry(
    operation: Callable[[], T],
    *,
    max_retries: int = 2,
    on_retry: Optional[Callable[[], None]] = None,
) -> T:
    """Run a transactional operation, retrying on transient failures.

    Calls ``operation()``. If it raises a transient database error, calls
    ``on_retry`` (typically a session rollback) and tries again, up to
    ``max_retries`` additional times. Non-transient errors are raised
    immediately.

    Args:
        operation: Zero-argument callable that performs and commits the work.
        max_retries: Maximum number of *additional* attempts after the
            first failure. Total attempts = 1 + max_retries.
        on_retry: Optional hook run after each failed attempt.

    Returns:
        Whatever ``operation`` returns on its first successful attempt.

    Raises:
        SQLAlchemyError: If a non-transient database error occurs.
        CommitRetryExhaustedError: If all attempts fail with transient errors.
    """
    errors: List[SQLAlchemyError] = []
    total_attempts = 1 + max(0, max_retries)

    for attempt in range(1, total_attempts + 1):
        try:
            result = operation()
            if attempt > 1:
                logger.info(
                    "Import commit succeeded on attempt %d/%d",
                    attempt,
                    total_attempts,
                )
            return result

        except SQLAlchemyError as exc:
            if not is_transient_db_error(exc):
                raise

            errors.append(exc)
            logger.warning(
                "Attempt %d/%d failed with transient database error: %s",
                attempt,
                total_attempts,
                exc,
            )
            if on_retry is not None:
                on_retry()

    raise CommitRetryExhaustedError(
        attempts=total_attempts,
        last_error=errors[-1],
        history=errors,
    )
