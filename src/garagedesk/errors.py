from __future__ import annotations


class GarageError(Exception):
    """Base for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(GarageError):
    status_code = 404


class ValidationError(GarageError):
    status_code = 400

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class InsufficientStockError(GarageError):
    status_code = 400

    def __init__(self, part_name: str, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock for part '{part_name}'. "
            f"Available: {available}, requested: {requested}"
        )
        self.part_name = part_name
        self.available = available
        self.requested = requested


class InvalidStateError(GarageError):
    status_code = 400


class ConflictError(GarageError):
    status_code = 409


class AuthError(GarageError):
    status_code = 401


class ForbiddenError(GarageError):
    status_code = 403
