# storefront/core/transactions.py
"""
Helpers for classifying storage failures inside a unit of work.

A failure is *retryable* when the database aborted the transaction because of
contention rather than because of bad data:

  - PostgreSQL serialization failure (40001) or deadlock (40P01)
  - SQLite "database is locked" / "database is busy"

Anything else is a hard storage failure.
"""
import time

from sqlalchemy.exc import DBAPIError, OperationalError

PG_RETRY_ERRCODES = {"40001", "40P01"}

SQLITE_RETRY_MESSAGES = (
    "database is locked",
    "database is busy",
    "deadlock detected",
    "could not serialize access",
)


def _pgcode_from(exc: BaseException) -> str | None:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_retryable(exc: BaseException) -> bool:
    """Return True if `exc` is a transient conflict worth another attempt."""
    if not isinstance(exc, DBAPIError):
        return False

    code = _pgcode_from(exc)
    if code and code in PG_RETRY_ERRCODES:
        return True

    if isinstance(exc, OperationalError):
        msg = str(exc).lower()
        return any(k in msg for k in SQLITE_RETRY_MESSAGES)

    return False


def backoff_sleep(backoff: float, attempt: int) -> None:
    """Linear backoff between attempts (attempt is 1-based)."""
    if backoff > 0:
        time.sleep(backoff * attempt)
