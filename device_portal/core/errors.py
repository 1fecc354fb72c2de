"""
Service-layer error taxonomy.

Services raise these; the exception handlers registered in
`device_portal.main` turn every one of them into the uniform
``{"error": "<message>", ...payload}`` response body.  Nothing here
knows about FastAPI beyond the status code it maps to.
"""

from typing import Any


class ServiceError(Exception):
    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None, **payload: Any):
        self.message = message or self.default_message
        self.payload = payload
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, **self.payload}


class ValidationError(ServiceError):
    """Malformed or missing input.  ``fields`` / ``lines`` carry detail."""

    status_code = 400
    default_message = "Invalid input"


class Unauthenticated(ServiceError):
    status_code = 401
    default_message = "Unauthorized - please log in again"


class Forbidden(ServiceError):
    status_code = 403
    # Intentionally vague: never say which role would have worked
    default_message = "Insufficient permissions"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 409
    default_message = "Already exists"


class BackendError(ServiceError):
    status_code = 500
    default_message = "An unexpected error occurred"


class PartialImportError(ServiceError):
    """Some rows of a validated batch failed at the storage layer."""

    status_code = 207
    default_message = "Some devices could not be imported"
