# Overview: Retry and row-locking helpers for the order and stock units of work.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """SELECT ... FOR UPDATE on backends that support it (SQLite ignores it)."""
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Run `func` as one unit of work, retrying when a concurrent writer got there first.

    OperationalError covers busy databases and deadlocks; StaleDataError is a
    version_id mismatch on products or orders. The session is rolled back
    before every retry, so `func` must reload whatever it touches. Domain
    errors are not caught here.
    """
    attempt = 1
    while True:
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts:
                raise
            current_app.logger.warning(
                "Concurrent update (%s), retry %d/%d", type(exc).__name__, attempt, attempts - 1
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
            attempt += 1
