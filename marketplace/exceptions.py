"""
API exceptions and the error envelope.

Every error response has the shape {"error": "<message>", "details": ...},
details being present only when there is something beyond the message.
"""

import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler


logger = logging.getLogger(__name__)


class MarketplaceError(exceptions.APIException):
    """APIException carrying optional structured details for the envelope."""

    def __init__(self, detail=None, details=None):
        super().__init__(detail)
        self.details = details


class StateConflict(MarketplaceError):
    """The resource is not in a state that allows the requested action."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict'
    default_code = 'conflict'


class ContentBlocked(MarketplaceError):
    """Submitted text was rejected by moderation."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Message blocked by moderation'
    default_code = 'content_blocked'


def error_response(message, status_code, details=None):
    body = {'error': message}
    if details is not None:
        body['details'] = details
    return Response(body, status=status_code)


def _message_and_details(exc):
    detail = exc.detail

    if isinstance(exc, exceptions.ValidationError):
        if isinstance(detail, list) and len(detail) == 1:
            return str(detail[0]), None
        return 'Validation failed', detail

    if isinstance(detail, dict):
        return str(detail.get('detail', exc.default_detail)), {
            key: value for key, value in detail.items() if key != 'detail'
        } or None

    if isinstance(detail, list):
        return str(exc.default_detail), detail

    return str(detail), getattr(exc, 'details', None)


def api_exception_handler(exc, context):
    """
    DRF EXCEPTION_HANDLER producing the {error, details} envelope.

    Unexpected exceptions are logged with their traceback and reported as a
    generic 500.
    """
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.error(
            f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}",
            exc_info=exc
        )
        return error_response('Internal server error', status.HTTP_500_INTERNAL_SERVER_ERROR)

    message, details = _message_and_details(exc)
    body = {'error': message}
    if details is not None:
        body['details'] = details
    response.data = body
    return response
