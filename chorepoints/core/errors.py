"""Domain errors raised by the access layer and services.

Each class carries the HTTP status it is rendered with; the handlers in
``chorepoints.main`` turn them into ``{"message": ...}`` responses.
"""


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """Row is not in the state the operation requires (e.g. already decided)."""
    status_code = 400


class PermissionDeniedError(DomainError):
    status_code = 403
