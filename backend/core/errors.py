"""Failure kinds raised by the scheduling services.

Every error carries a ``kind`` tag so the web layer can translate it without
inspecting messages.
"""

from fastapi import HTTPException, status


class SchedulingError(Exception):
    kind = 'scheduling_error'
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SchedulingError):
    kind = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(SchedulingError):
    kind = 'permission_denied'
    status_code = status.HTTP_403_FORBIDDEN


class InvalidTransitionError(SchedulingError):
    kind = 'invalid_transition'
    status_code = status.HTTP_409_CONFLICT


class ConflictError(SchedulingError):
    kind = 'conflict'
    status_code = status.HTTP_409_CONFLICT


class ValidationError(SchedulingError):
    kind = 'validation'
    status_code = status.HTTP_400_BAD_REQUEST


class StoreError(SchedulingError):
    kind = 'store_unavailable'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def to_http_exception(exc: SchedulingError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail={'error': exc.kind, 'message': exc.message},
    )
