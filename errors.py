"""Error taxonomy shared by the reservation and flight operations."""
from typing import Optional


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class UnauthenticatedError(DomainError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class ForbiddenError(DomainError):
    status_code = 403


class InvalidInputError(DomainError):
    status_code = 400


class NotFoundError(DomainError):
    status_code = 404


class SeatConflictError(DomainError):
    """The seat already has a reservation, possibly from a concurrent request."""

    status_code = 400

    def __init__(self, message: str = "Seat already booked"):
        super().__init__(message)


class StoreError(DomainError):
    """Unexpected persistence failure. The message never reaches the client."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
