"""Failure taxonomy for the trip planner core.

Every asynchronous boundary (identity, subscription, writes) converts its
failures into one of these classes before they reach the session state:

  IdentityFailure     -> provider unreachable or rejected; session degrades to a local id
  SubscriptionFailure -> snapshot stream could not be opened or was interrupted
  WriteFailure        -> upsert/delete rejected by the store
  ValidationFailure   -> bad user input (date range, date key); no remote action taken
"""
from __future__ import annotations
from typing import Optional


class PlannerError(Exception):
    """Base class for every failure surfaced by the planner."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class IdentityFailure(PlannerError):
    pass


class SubscriptionFailure(PlannerError):
    pass


class WriteFailure(PlannerError):
    pass


class ValidationFailure(PlannerError):
    pass


class NotReadyError(PlannerError):
    """Raised when an engine call is made before its preconditions hold."""


def describe(exc: BaseException) -> str:
    """Short human readable description of an exception (message or class name)."""
    if isinstance(exc, PlannerError):
        return exc.message
    text = str(exc).strip()
    return text or exc.__class__.__name__


__all__ = [
    'PlannerError', 'IdentityFailure', 'SubscriptionFailure', 'WriteFailure',
    'ValidationFailure', 'NotReadyError', 'describe'
]
