"""
Token authentication for the API.

Kept in its own module so that REST framework can import the
authentication class from settings without pulling in any views.
"""
from __future__ import annotations

import hmac

from django.conf import settings
from rest_framework import authentication

CRON_AUTH = 'cron'


class TokenAuthentication(authentication.TokenAuthentication):
    """Token authentication using the ``Token`` keyword.

    JWT access tokens are accepted separately with the ``Bearer``
    keyword by simplejwt's ``JWTAuthentication``.
    """

    keyword = 'Token'


class CronSecretAuthentication(authentication.BaseAuthentication):
    """Recognise scheduler calls carrying ``Authorization: Bearer <CRON_SECRET>``.

    Must run before ``JWTAuthentication``, which rejects any bearer value
    that is not a JWT. A match authenticates no user; ``request.auth`` is
    set to ``CRON_AUTH`` instead.
    """

    def authenticate(self, request):
        secret = settings.CRON_SECRET
        header = request.META.get('HTTP_AUTHORIZATION', '')
        if secret and hmac.compare_digest(header.encode(), f'Bearer {secret}'.encode()):
            return None, CRON_AUTH
        return None
