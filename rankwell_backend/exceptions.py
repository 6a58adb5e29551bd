"""
Shared error types and the JSON error envelope used by every API endpoint.

Envelope:
    {"error": {"code": "...", "message": "...", "detail": ..., "status": 400}}
"""
import logging
import uuid

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class InvalidTransition(Exception):
    """Raised when a job is asked to move to a status its current status does not allow."""

    def __init__(self, entity, current, target, reason=None):
        self.entity = entity
        self.current = current
        self.target = target
        self.reason = reason
        message = f"{entity} cannot move from {current} to {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidStatus(Exception):
    """Raised when an operation is not permitted in the job's current status."""

    def __init__(self, message, current=None):
        self.current = current
        super().__init__(message)


class RateLimited(Exception):
    def __init__(self, message, retry_after=None):
        self.retry_after = retry_after
        super().__init__(message)


class InvalidIdentifier(Exception):
    def __init__(self, name='id'):
        self.name = name
        super().__init__(f"Invalid {name}.")


def error_response(code, message, http_status, detail=None):
    return Response({
        'error': {'code': code, 'message': message, 'detail': detail, 'status': http_status}
    }, status=http_status)


def invalid_id_response(name='id'):
    return error_response('INVALID_ID', f'Invalid {name}.', status.HTTP_400_BAD_REQUEST)


def not_found_response(resource):
    return error_response('NOT_FOUND', f'{resource} not found.', status.HTTP_404_NOT_FOUND)


def forbidden_response():
    return error_response('FORBIDDEN', 'Permission denied.', status.HTTP_403_FORBIDDEN)


def validation_error_response(errors):
    return error_response('VALIDATION_ERROR', 'Invalid request data.', status.HTTP_400_BAD_REQUEST, errors)


def parse_uuid(value):
    """Return a UUID for `value`, or None when it is not a well-formed id."""
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def get_owned_or_error(model, object_id, user, resource, owner_field='user'):
    """
    Look up `model` by id and check it belongs to `user`.

    Returns (instance, None) on success or (None, error Response).
    """
    pk = parse_uuid(object_id)
    if pk is None:
        return None, invalid_id_response(f'{resource.lower()} id')
    instance = model.objects.filter(pk=pk).first()
    if instance is None:
        return None, not_found_response(resource)
    if getattr(instance, f'{owner_field}_id') != user.id:
        return None, forbidden_response()
    return instance, None


_DRF_CODES = {
    400: 'VALIDATION_ERROR',
    401: 'UNAUTHORIZED',
    403: 'FORBIDDEN',
    404: 'NOT_FOUND',
    405: 'METHOD_NOT_ALLOWED',
    429: 'RATE_LIMITED',
}


def api_exception_handler(exc, context):
    """
    DRF exception handler that wraps framework errors in the shared envelope
    and maps domain exceptions to their HTTP status.
    """
    if isinstance(exc, InvalidStatus):
        return error_response('INVALID_STATUS', str(exc), status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, InvalidTransition):
        return error_response('INVALID_STATUS', str(exc), status.HTTP_409_CONFLICT)
    if isinstance(exc, InvalidIdentifier):
        return invalid_id_response(exc.name)
    if isinstance(exc, RateLimited):
        return error_response('RATE_LIMITED', str(exc), status.HTTP_429_TOO_MANY_REQUESTS,
                              {'retry_after': exc.retry_after})

    response = exception_handler(exc, context)
    if response is None:
        logger.exception("Unhandled API error in %s", context.get('view').__class__.__name__)
        return error_response('INTERNAL_ERROR', 'An unexpected error occurred.',
                              status.HTTP_500_INTERNAL_SERVER_ERROR)

    code = _DRF_CODES.get(response.status_code, 'ERROR')
    data = response.data
    if isinstance(data, dict) and 'detail' in data and len(data) == 1:
        message, detail = str(data['detail']), None
    else:
        message, detail = 'Invalid request data.', data
    response.data = {
        'error': {'code': code, 'message': message, 'detail': detail, 'status': response.status_code}
    }
    return response
