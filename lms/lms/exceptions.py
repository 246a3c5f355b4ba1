"""
Error taxonomy for the training engine.

Services raise these; DRF turns them into responses through
``api_exception_handler`` so every error body reads
``{"error": <message>, "code": <code>}``.
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db import DatabaseError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ValidationError(exceptions.APIException):
    """Malformed input: override score/reason, answers, options"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid request.'
    default_code = 'validation_error'


class QuizNotAvailable(ValidationError):
    """Quiz has no questions and cannot be taken"""
    default_detail = 'This quiz has no questions available.'
    default_code = 'quiz_not_available'


class AuthorizationError(exceptions.APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'authorization_error'


class QuizLocked(exceptions.APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Complete the video before taking the quiz.'
    default_code = 'quiz_locked'


class AttemptLimitExceeded(exceptions.APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Maximum number of attempts reached.'
    default_code = 'attempt_limit_exceeded'


class NotFound(exceptions.APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class AttemptConflict(exceptions.APIException):
    """Concurrent submissions kept colliding on the same attempt number"""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Another submission for this quiz is in progress, please retry.'
    default_code = 'attempt_conflict'


class PersistenceError(exceptions.APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The record could not be saved, please retry.'
    default_code = 'persistence_error'


def _flatten_detail(detail):
    """Collapse DRF's nested error detail into one readable message"""
    if isinstance(detail, dict):
        parts = []
        for field, value in detail.items():
            message = _flatten_detail(value)
            parts.append(message if field == 'non_field_errors' else f'{field}: {message}')
        return '; '.join(parts)
    if isinstance(detail, (list, tuple)):
        return '; '.join(_flatten_detail(item) for item in detail)
    return str(detail)


def _error_code(exc):
    if isinstance(exc, exceptions.ValidationError):
        return 'validation_error'
    if isinstance(exc, exceptions.NotFound):
        return 'not_found'
    if isinstance(exc, exceptions.PermissionDenied):
        return 'authorization_error'
    return getattr(exc, 'default_code', 'error')


def api_exception_handler(exc, context):
    """
    Wrap DRF's default handler:
    - database write failures surface as PersistenceError
    - every error body is {"error": ..., "code": ...}
    - anything unexpected is logged and returned as 500
    """
    if isinstance(exc, Http404):
        exc = NotFound(str(exc) or None)
    elif isinstance(exc, DjangoPermissionDenied):
        exc = AuthorizationError()
    elif isinstance(exc, DatabaseError):
        logger.exception('Database error in %s', context.get('view').__class__.__name__)
        exc = PersistenceError()

    response = exception_handler(exc, context)
    if response is None:
        logger.exception('Unhandled error: %s', exc)
        return Response(
            {'error': 'Internal server error', 'code': 'server_error'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response.data = {
        'error': _flatten_detail(exc.detail) if hasattr(exc, 'detail') else str(exc),
        'code': _error_code(exc),
    }
    return response
