"""Error taxonomy for Lembreto Service.

Domain errors are raised where they are detected and travel unmodified to
the exception handlers registered in api_server, which turn them into the
standard error envelope.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base error carrying an HTTP status code, a message and optional detail."""

    status_code: int = 500

    def __init__(self, message: str, errors: Optional[Any] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(AppError):
    """Missing/invalid field, enum mismatch or recurrence rule violation."""

    status_code = 400

    @classmethod
    def for_field(cls, field: str, message: str) -> "InvalidInputError":
        return cls("Erro de validação", errors={"campo": field, "message": message})


class UnauthorizedError(AppError):
    status_code = 401


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class GatewayError(AppError):
    """The WhatsApp provider rejected the call or could not be reached."""

    status_code = 400
