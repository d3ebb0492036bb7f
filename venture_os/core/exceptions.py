"""
Platform-wide exception hierarchy.

Most services return ``(obj, None)`` / ``(None, error_dict)`` tuples, which is
what the UI-facing actions expect. Code paths that cannot return early
(the automation engine, sync item processing, CLI commands) raise these
types instead; the app factory registers one handler per type so they map
to consistent HTTP status codes everywhere.

Usage:
    from venture_os.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Task", resource_id=task_id)
    raise ValidationError("progress must be between 0 and 100")
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "Project", "Task").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Maps to HTTP 422 in the app-level error handler.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation conflicts with current state (HTTP 409).

    Example: starting a second active sprint for the same project.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


def to_error(exc: Exception) -> dict:
    """Convert a domain exception into the service-layer error dict."""
    if isinstance(exc, NotFoundError):
        return {"error": str(exc), "status": 404}
    if isinstance(exc, ConflictError):
        return {"error": str(exc), "status": 409}
    return {"error": str(exc), "status": 400}
