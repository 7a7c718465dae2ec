"""API errors. Each maps to one HTTP status and renders as ``{"detail": ...}``."""

from fastapi import HTTPException, status


class MonevError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Bad request"
    headers: dict[str, str] | None = None

    def __init__(self, detail: str | None = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or self.default_detail,
            headers=type(self).headers,
        )


class NotFoundError(MonevError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class AlreadyExistsError(MonevError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} already exists")


class ConflictError(MonevError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource is still in use"


class UnauthorizedError(MonevError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"
    headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(MonevError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You don't have permission to access this resource"


class ValidationError(MonevError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Validation error"
