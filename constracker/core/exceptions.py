"""Error taxonomy and the DRF exception handler that renders it"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db import DatabaseError as DjangoDatabaseError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import AuthenticationFailed as JWTAuthenticationFailed
from rest_framework_simplejwt.exceptions import InvalidToken

logger = logging.getLogger(__name__)


class ConstrackerError(exceptions.APIException):
    """Base class; ``status_label`` ends up in the ``status`` field of the body."""
    status_code = status.HTTP_400_BAD_REQUEST
    status_label = 'failed'
    default_detail = 'Request failed.'
    default_code = 'failed'


class AuthError(ConstrackerError):
    """Missing, invalid or expired session token."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Invalid Token'
    default_code = 'invalid_token'

    MISSING = 'missing token'
    INVALID = 'invalid token'
    EXPIRED = 'expired token'

    MESSAGES = {
        MISSING: 'Missing Token',
        INVALID: 'Invalid Token',
        EXPIRED: 'Expired Token',
    }

    def __init__(self, reason=INVALID, detail=None):
        self.status_label = reason
        super().__init__(detail or self.MESSAGES.get(reason, self.default_detail))


class AuthorizationError(ConstrackerError):
    status_code = status.HTTP_403_FORBIDDEN
    status_label = 'forbidden'
    default_detail = 'You are not allowed to perform this action.'
    default_code = 'forbidden'


class ValidationError(ConstrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    status_label = 'failed'
    default_detail = 'Invalid input.'
    default_code = 'invalid'

    def __init__(self, detail=None, errors=None):
        self.errors = errors
        super().__init__(detail)


class NotFoundError(ConstrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    status_label = 'not found'
    default_detail = 'Not found.'
    default_code = 'not_found'


class DatabaseError(ConstrackerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    status_label = 'failed'
    default_detail = 'Database error.'
    default_code = 'database_error'


def _message_from(detail):
    if isinstance(detail, (list, tuple)) and detail:
        return _message_from(detail[0])
    if isinstance(detail, dict) and detail:
        key, value = next(iter(detail.items()))
        return f"{key}: {_message_from(value)}" if key != 'non_field_errors' else _message_from(value)
    return str(detail)


def _failure(label, message, http_status, errors=None, headers=None):
    body = {'status': label, 'message': message}
    if errors:
        body['errors'] = errors
    response = Response(body, status=http_status)
    for key, value in (headers or {}).items():
        response[key] = value
    return response


def exception_handler(exc, context):
    """
    Render every error as ``{"status": ..., "message": ...}``.

    DRF/simplejwt/Django errors are first translated into the project's
    taxonomy so the client can tell a missing token from an expired one.
    """
    # rest_framework.views loads the authentication classes, which import this module
    from rest_framework.views import exception_handler as drf_exception_handler

    if isinstance(exc, exceptions.NotAuthenticated):
        exc = AuthError(AuthError.MISSING)
    elif isinstance(exc, (InvalidToken, JWTAuthenticationFailed)) and not isinstance(exc, AuthError):
        exc = AuthError(AuthError.INVALID)
    elif isinstance(exc, Http404):
        exc = NotFoundError(str(exc) or None)
    elif isinstance(exc, (exceptions.PermissionDenied, DjangoPermissionDenied)) and not isinstance(exc, ConstrackerError):
        exc = AuthorizationError(getattr(exc, 'detail', None) or None)
    elif isinstance(exc, DjangoDatabaseError):
        logger.error(f"Database error in {context.get('view').__class__.__name__ if context.get('view') else 'view'}: {exc}", exc_info=exc)
        exc = DatabaseError()

    if isinstance(exc, ConstrackerError):
        return _failure(
            exc.status_label,
            _message_from(exc.detail),
            exc.status_code,
            errors=getattr(exc, 'errors', None),
            headers={'WWW-Authenticate': 'Bearer realm="api"'} if isinstance(exc, AuthError) else None,
        )

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        return _failure('failed', _message_from(exc.detail), response.status_code, errors=exc.detail)

    return _failure('failed', _message_from(getattr(exc, 'detail', str(exc))), response.status_code,
                    headers={k: v for k, v in response.items() if k in ('Retry-After', 'Allow')})
