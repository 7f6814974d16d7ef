"""
Polling helper module

Provides the bounded poll loop used for receipt, finalization and
priority-operation waits, with correlation IDs for tracing.
"""

import logging
import time
import uuid
import contextvars
from typing import Callable, Optional, TypeVar

from ..errors import TransactionError
from ..config import config as global_config

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Context variable for correlation ID (thread-safe)
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for transaction tracing."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Context manager for correlation ID scoping.

    Usage:
        with CorrelationContext("deposit") as cid:
            logger.info(f"[{cid}] Starting deposit")
            receipt = wait_for(...)
    """

    def __init__(self, prefix: Optional[str] = None):
        self.correlation_id = generate_correlation_id()
        if prefix:
            self.correlation_id = f"{prefix}_{self.correlation_id}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)


def _log_with_correlation(
    level: int,
    message: str,
    operation_name: str,
    attempt: Optional[int] = None,
    max_attempts: Optional[int] = None,
    **extra
):
    """
    Log message with correlation ID and structured context.

    Unbounded loops render the attempt counter as "n/inf".
    """
    cid = get_correlation_id()

    parts = []
    if cid:
        parts.append(f"[{cid}]")
    parts.append(f"[{operation_name}]")
    if attempt is not None:
        parts.append(f"[{attempt}/{max_attempts if max_attempts is not None else 'inf'}]")
    parts.append(message)

    extra_context = {
        "correlation_id": cid,
        "operation": operation_name,
        "attempt": attempt,
        "max_attempts": max_attempts,
        **extra
    }

    logger.log(level, " ".join(parts), extra=extra_context)


def wait_for(
    check: Callable[[], Optional[T]],
    operation_name: str,
    interval: Optional[float] = None,
    timeout: Optional[float] = None,
    max_attempts: Optional[int] = None,
    tx_hash: Optional[str] = None,
) -> T:
    """
    Call `check` until it returns something other than None.

    Sleeps `interval` seconds between calls. Bounds default to
    config.polling; when both are None the loop never gives up.
    Errors raised by `check` propagate unchanged.

    Args:
        check: Zero-argument callable returning the awaited value or None
        operation_name: Name for logging purposes
        interval: Seconds between polls (defaults to config.polling.interval_seconds)
        timeout: Wall-clock bound in seconds
        max_attempts: Bound on the number of `check` calls
        tx_hash: Reported in the timeout error

    Returns:
        The first non-None value returned by `check`

    Raises:
        TransactionError: confirmation_timeout when a bound is exhausted
    """
    polling = global_config.polling
    interval = interval if interval is not None else polling.interval_seconds
    timeout = timeout if timeout is not None else polling.timeout_seconds
    max_attempts = max_attempts if max_attempts is not None else polling.max_attempts

    deadline = time.monotonic() + timeout if timeout is not None else None
    attempt = 0

    while True:
        attempt += 1
        value = check()
        if value is not None:
            if attempt > 1:
                _log_with_correlation(
                    logging.DEBUG,
                    f"Done after {attempt} polls",
                    operation_name,
                    attempt,
                    max_attempts,
                )
            return value

        if max_attempts is not None and attempt >= max_attempts:
            break
        if deadline is not None and time.monotonic() + interval > deadline:
            break

        _log_with_correlation(
            logging.DEBUG,
            "still pending",
            operation_name,
            attempt,
            max_attempts,
            tx_hash=tx_hash,
        )
        time.sleep(interval)

    _log_with_correlation(
        logging.WARNING,
        "Polling bound exhausted",
        operation_name,
        attempt,
        max_attempts,
        tx_hash=tx_hash,
    )
    raise TransactionError.confirmation_timeout(operation_name, attempt, tx_hash)
