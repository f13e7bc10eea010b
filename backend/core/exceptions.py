"""
Service-layer errors.

Service functions raise these; views catch them at the call site and turn
them into `{'error': message}` responses with the matching status code.
"""
from rest_framework import status
from rest_framework.response import Response


class ServiceError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'error'

    def __init__(self, message, code=None, extra=None):
        super().__init__(message)
        self.message = str(message)
        if code:
            self.code = code
        self.extra = extra or {}

    def to_response(self):
        payload = {'error': self.message, 'code': self.code}
        payload.update(self.extra)
        return Response(payload, status=self.status_code)


class ValidationFailed(ServiceError):
    code = 'validation_failed'


class PermissionDeniedError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = 'permission_denied'


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'not_found'


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = 'conflict'


class LimitExceededError(ServiceError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    code = 'limit_exceeded'
