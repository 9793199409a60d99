# Overview: Retry helpers for database operations that can collide with concurrent writers.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError

from ..extensions import db


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, retry_on=(OperationalError,)):
    """
    Execute a DB operation, retrying on the given exception types.

    The session is rolled back before each retry so func always starts
    from a clean transaction.
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Retrying %s after %s (attempt %d/%d)",
                getattr(func, "__name__", "operation"),
                type(exc).__name__,
                attempt + 1,
                attempts,
            )
            if backoff_base:
                time.sleep(backoff_base * (2 ** attempt))


def retry_once_on_collision(func):
    """
    Run a whole creation twice at most when the first attempt hits a unique
    constraint (display number or tracking code drawn by a concurrent writer).
    """
    return run_with_retry(func, attempts=2, backoff_base=0, retry_on=(IntegrityError,))
