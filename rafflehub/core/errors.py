"""Error taxonomy for lifecycle operations.

Every error is an ``HTTPException`` so the API exception handlers render it
directly; non-HTTP callers (scheduler, CLI) catch them like any exception.
"""

from __future__ import annotations

from fastapi import HTTPException


class LifecycleError(HTTPException):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class ValidationError(LifecycleError):
    status_code = 400


class AuthorizationError(LifecycleError):
    status_code = 403


class NotFoundError(LifecycleError):
    status_code = 404


class StateConflictError(LifecycleError):
    status_code = 409


class CapacityError(LifecycleError):
    status_code = 409
