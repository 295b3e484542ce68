"""Typed API errors and the REST framework exception handler.

Four kinds of failure reach the request boundary:

- validation errors (``rest_framework.exceptions.ValidationError``, 400)
- not found (``rest_framework.exceptions.NotFound`` / ``Http404``, 404)
- conflicts with a business rule (:class:`Conflict`, 409)
- concurrent modification (:class:`ConcurrencyConflict`, 409, retryable)
"""

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class Conflict(APIException):
    """The request is well-formed but would break a business rule."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The request conflicts with the current state of the resource.'
    default_code = 'conflict'


class ConcurrencyConflict(APIException):
    """Another request changed the resource first; the caller should retry."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The resource was modified by another request. Please retry.'
    default_code = 'retry'


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ''
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def _error_code(exc) -> str:
    if isinstance(exc, Http404):
        return 'not_found'
    if isinstance(exc, APIException):
        codes = exc.get_codes()
        return codes if isinstance(codes, str) else 'invalid'
    return 'error'


def api_exception_handler(exc, context):
    """Add a ``success/error/code`` envelope on top of DRF's default body."""
    response = exception_handler(exc, context)
    if response is None:
        return None

    body = dict(response.data) if isinstance(response.data, dict) else {'detail': response.data}
    body.setdefault('success', False)
    body.setdefault('error', _first_message(response.data))
    body.setdefault('code', _error_code(exc))
    response.data = body
    return response
