"""
Session-cookie authentication.

The login view stores a signed simplejwt access token in an httpOnly cookie.
Its claims carry ``{id, role, projects[]}``; every API view authenticates
through ``CookieJWTAuthentication``, which also accepts a ``Bearer`` header.
"""
import logging

import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from .exceptions import AuthError

logger = logging.getLogger(__name__)

User = get_user_model()

TOKEN_VALID = 'success'


def project_claim(user):
    """Project ids the token should carry for ``user``."""
    from constracker.projects.models import Project

    if user.is_admin:
        return list(Project.objects.order_by('id').values_list('id', flat=True))
    return list(user.assigned_projects.order_by('id').values_list('id', flat=True))


def build_refresh_token(user):
    """Refresh token whose derived access tokens carry role and project claims"""
    refresh = RefreshToken.for_user(user)
    # simplejwt stringifies the user id claim; clients expect the integer id
    refresh[jwt_settings.USER_ID_CLAIM] = user.pk
    refresh['role'] = user.role
    refresh['projects'] = project_claim(user)
    return refresh


def mark_offline(user_id):
    if user_id is None:
        return
    updated = User.objects.filter(pk=user_id, is_online=True).update(is_online=False)
    if updated:
        logger.info(f"User {user_id} marked offline after token expiry")


def classify_token(raw_token):
    """
    Validate an access token.

    Returns ``(TOKEN_VALID, AccessToken)`` for a good token. Raises
    ``AuthError`` with the matching reason otherwise; an expired but
    correctly signed token also flips the owner's presence flag.
    """
    if not raw_token:
        raise AuthError(AuthError.MISSING)

    try:
        jwt.decode(
            raw_token,
            jwt_settings.SIGNING_KEY,
            algorithms=[jwt_settings.ALGORITHM],
        )
    except jwt.ExpiredSignatureError:
        try:
            payload = jwt.decode(
                raw_token,
                jwt_settings.SIGNING_KEY,
                algorithms=[jwt_settings.ALGORITHM],
                options={'verify_exp': False},
            )
        except jwt.InvalidTokenError:
            raise AuthError(AuthError.INVALID)
        mark_offline(payload.get(jwt_settings.USER_ID_CLAIM))
        raise AuthError(AuthError.EXPIRED)
    except jwt.InvalidTokenError:
        raise AuthError(AuthError.INVALID)

    try:
        return TOKEN_VALID, AccessToken(raw_token)
    except TokenError:
        raise AuthError(AuthError.INVALID)


class CookieJWTAuthentication(JWTAuthentication):
    """simplejwt authentication that reads the session cookie first"""

    def authenticate(self, request):
        header = self.get_header(request)
        if header is not None:
            raw_token = self.get_raw_token(header)
        else:
            raw_token = request.COOKIES.get(settings.AUTH_COOKIE_NAME)

        if not raw_token:
            return None

        _, validated_token = classify_token(raw_token)
        return self.get_user(validated_token), validated_token
