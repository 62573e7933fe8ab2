"""Error taxonomy shared by the services and the HTTP layer.

Each error carries the HTTP status it maps to, so route handlers never need
to translate exceptions themselves.
"""

from __future__ import annotations


class FinanceTrackerError(Exception):
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(FinanceTrackerError):
    status_code = 400
    default_message = "Invalid data format"


class ForeignKeyError(FinanceTrackerError):
    status_code = 400
    default_message = "Invalid reference to related data"


class AuthError(FinanceTrackerError):
    status_code = 401
    default_message = "Not authorized"


class NotFoundError(FinanceTrackerError):
    status_code = 404
    default_message = "Not found"


class ConflictError(FinanceTrackerError):
    status_code = 409
    default_message = "A record with this information already exists"
