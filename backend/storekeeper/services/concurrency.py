# Overview: Service-layer operations for concurrency; unit-of-work, retry, and row locking helpers.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import InternalError, ServiceError
from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts, document counter races).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying after concurrency conflict (attempt %d): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, failure_message: str = "Something went wrong. Please try again later!"):
    """
    Run `func` as one unit of work and commit it.

    Every write `func` makes (documents, lines, stock, credit) commits
    together or not at all:
    - ServiceError: rolled back and re-raised unchanged
    - concurrency conflicts: rolled back and the whole unit retried
    - any other SQLAlchemyError, or retries exhausted: rolled back and
      raised as InternalError(failure_message)
    """
    attempts = current_app.config.get("DB_RETRY_ATTEMPTS", 3)
    backoff_base = current_app.config.get("DB_RETRY_BACKOFF_SECONDS", 0.1)

    def _op():
        try:
            result = func()
            db.session.commit()
            return result
        except ServiceError:
            db.session.rollback()
            raise
        except (OperationalError, StaleDataError):
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Unit of work failed")
            raise InternalError(failure_message) from exc

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except (OperationalError, StaleDataError) as exc:
        logger.error("Unit of work abandoned after %d attempts: %s", attempts, exc)
        raise InternalError(failure_message) from exc
