"""Exceptions raised by the policy rule store."""

from contextlib import contextmanager

from django.db import DatabaseError, IntegrityError


class RuleStoreError(Exception):
    """Base exception for policy rule store errors."""


class StoreFailure(RuleStoreError):
    """Raised when a query against the policy rule table fails."""


class ConstraintViolation(StoreFailure):
    """Raised when an inserted policy rule already exists in the table."""


@contextmanager
def store_errors(operation: str):
    """
    Translate database errors raised inside the block into rule store errors.

    Args:
        operation (str): Short description of the operation, used in the error message.

    Raises:
        ConstraintViolation: On ``IntegrityError``.
        StoreFailure: On any other ``DatabaseError``.
    """
    try:
        yield
    except IntegrityError as exc:
        raise ConstraintViolation(f"{operation} violated the unique policy rule constraint: {exc}") from exc
    except DatabaseError as exc:
        raise StoreFailure(f"{operation} failed: {exc}") from exc
