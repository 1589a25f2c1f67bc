"""
Queue domain errors and the unified API exception handler.

Each domain error carries a stable ``default_code`` that the handler
copies into the response body so the admin UI can render a specific
message instead of a generic failure.
"""
import logging

from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class QueueError(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'queue operation failed'
    default_code = 'queue_error'


class NotFound(QueueError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'not found'
    default_code = 'not_found'


class InvalidTransition(QueueError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'status transition not allowed'
    default_code = 'invalid_transition'


class NoOp(QueueError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'nothing to transfer'
    default_code = 'no_op'


class DuplicateNumber(QueueError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'could not allocate a unique queue number'
    default_code = 'duplicate_number'


class ValidationError(QueueError):
    default_detail = 'invalid input'
    default_code = 'validation_error'


def _error_code(exc) -> str:
    if isinstance(exc, QueueError):
        return exc.default_code
    if isinstance(exc, exceptions.ValidationError):
        return 'validation_error'
    if isinstance(exc, (Http404, exceptions.NotFound)):
        return 'not_found'
    if isinstance(exc, exceptions.APIException):
        return exc.default_code
    return 'api_error'


def api_exception_handler(exc, context):
    if isinstance(exc, DuplicateNumber):
        # The per-date serialization guarantee failed; page someone.
        logger.critical('queue number allocation exhausted retries: %s', exc.detail)
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled API error', exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return Response(
        {'ok': False, 'error': {'code': _error_code(exc), 'message': detail}},
        status=resp.status_code,
    )
