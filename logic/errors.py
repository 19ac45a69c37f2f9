"""Application errors, each carrying the HTTP status it is reported with."""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Missing or malformed input."""
    status_code = 400


class AuthError(AppError):
    """Bad credentials or no token presented."""
    status_code = 401


class ForbiddenError(AppError):
    """Token presented but invalid or expired."""
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class StorageError(AppError):
    status_code = 500
