"""
Domain errors raised by the service layer

Error                Status Code
-------------------  --------------------------
ValidationError      422(Unprocessable Entity)
PermissionDenied     403(Forbidden)
NotFound             404(Not Found)
PersistenceError     500(Internal Server Error)

Endpoints let these propagate; main.py maps them to JSON responses of the form {"detail": message}.
"""

from fastapi import status


class TaskboardError(Exception):
    """Base class for errors that map to an HTTP response"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskboardError):
    """Missing or invalid input (empty title, no assignee, missing reason for a gated change)"""

    status_code = 422


class PermissionDenied(TaskboardError):
    """Capability check failed for the acting user"""

    status_code = status.HTTP_403_FORBIDDEN


class NotFound(TaskboardError):
    """Referenced task, profile, team or report does not exist"""

    status_code = status.HTTP_404_NOT_FOUND


class PersistenceError(TaskboardError):
    """A write to the database failed"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
