"""
Bearer-token authentication against the Profile table.

Tokens are issued by the external identity provider; this service only
verifies them and resolves the acting profile.
"""
import logging

import jwt
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed

from .models import Profile

logger = logging.getLogger(__name__)


class ProfileJWTAuthentication(BaseAuthentication):
    """
    Authorization: Bearer <jwt>

    The payload must carry ``user_id`` (or ``email``). The resolved Profile
    becomes ``request.user``; its role and organization scope every check.
    """
    keyword = 'Bearer'

    def authenticate(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None
        if len(auth) != 2:
            raise AuthenticationFailed('Invalid authorization header')

        token = auth[1].decode()
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthenticationFailed('Token has expired')
        except jwt.InvalidTokenError:
            raise AuthenticationFailed('Invalid token')

        user_id = payload.get('user_id')
        email = payload.get('email')
        if not user_id and not email:
            raise AuthenticationFailed('Invalid token: missing email or user_id')

        try:
            if user_id:
                profile = Profile.objects.get(id=user_id)
            else:
                profile = Profile.objects.get(email=email)
        except (Profile.DoesNotExist, ValueError, DjangoValidationError):
            logger.warning('Token for unknown user: user_id=%s email=%s', user_id, email)
            raise AuthenticationFailed('User not found')

        if profile.status != 'active':
            raise AuthenticationFailed('User is not active')

        return (profile, token)

    def authenticate_header(self, request):
        return self.keyword


def issue_token(profile, **claims):
    """Sign a token for ``profile`` - used by tests and local tooling"""
    payload = {
        'user_id': str(profile.id),
        'email': profile.email,
        'role': profile.role,
    }
    payload.update(claims)
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
