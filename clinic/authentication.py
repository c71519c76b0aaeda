"""
Bearer-token authentication backend.

Subclasses simplejwt's ``JWTAuthentication`` so the project's settings
keep a stable import path.  Token verification and user lookup are
delegated entirely to simplejwt; this module only adds the rule that a
deactivated account is rejected even while its token is still valid.
"""
from __future__ import annotations

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed


class BearerAuthentication(JWTAuthentication):
    """Resolve ``Authorization: Bearer <jwt>`` to a :class:`clinic.models.User`."""

    def get_user(self, validated_token):
        user = super().get_user(validated_token)
        if not user.is_active:
            raise AuthenticationFailed('User is inactive', code='user_inactive')
        return user
