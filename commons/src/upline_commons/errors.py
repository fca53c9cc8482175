"""Exceptions shared across upline services."""

from __future__ import annotations


class ConcurrencyConflictError(RuntimeError):
    """Raised when a lock cannot be acquired within its contention budget.

    Callers that own the locks are expected to release what they hold and
    retry; the error is not meant to cross a service boundary.
    """


class LockTimeoutError(ConcurrencyConflictError):
    """Raised when a single lock acquisition times out."""


__all__ = ["ConcurrencyConflictError", "LockTimeoutError"]
