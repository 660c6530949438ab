# app/core/errors.py
from __future__ import annotations

from fastapi import HTTPException


class DomainError(Exception):
    """
    Base for failures that cross the service boundary.

    Services raise these only after rolling back their own transaction,
    so a caller never observes partial writes.
    """

    status_code: int = 400
    default_message: str = "Request failed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class BadRequest(DomainError):
    status_code = 400
    default_message = "Bad request."


class NotFound(DomainError):
    status_code = 404
    default_message = "Not found."


class Forbidden(DomainError):
    status_code = 403
    default_message = "Forbidden."


class Conflict(DomainError):
    # state-machine violations
    status_code = 409
    default_message = "Conflict."


class Internal(DomainError):
    status_code = 500
    default_message = "Internal error."


class ProviderUnavailable(DomainError):
    status_code = 502
    default_message = "Payment provider unavailable."


def to_http(exc: DomainError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)
