"""
Authentication views.

Login and registration hand out both a legacy DRF token and a JWT pair;
the front-end may use either (see ``core.authentication``). Kept apart from
the authentication class to avoid circular imports when DRF initialises
its authentication classes.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from django.db import transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from core.models import User
from core.serializers.auth import LoginSerializer, RegisterSerializer
from core.services.audit import log_action

logger = logging.getLogger(__name__)


def serialize_user(user: User) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'name': user.display_name(),
        'role': user.role,
    }


def _token_payload(user: User) -> dict:
    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return {
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': serialize_user(user),
    }


def _find_login(identifier: str) -> str:
    """Accept either a username or an email address."""
    if '@' in identifier:
        match = User.objects.filter(email__iexact=identifier).values_list('username', flat=True).first()
        if match:
            return match
    return identifier


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = _find_login(s.validated_data['username'])
    ip = request.META.get('REMOTE_ADDR')

    user = authenticate(request, username=username, password=s.validated_data['password'])
    if not user:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': username, 'ip': ip})
        logger.info("failed login for %s from %s", username, ip)
        return Response({'ok': False, 'detail': 'Invalid username or password'}, status=status.HTTP_400_BAD_REQUEST)

    log_action(user=user, action='login', object_type='user', object_id=user.id, detail={'result': 'ok', 'ip': ip})
    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])
    return Response(_token_payload(user))


login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    with transaction.atomic():
        user = User.objects.create_user(
            username=vd['email'],
            email=vd['email'],
            password=vd['password'],
            first_name=vd['firstName'],
            last_name=vd.get('lastName', ''),
            role=User.ROLE_STUDENT,
        )
        log_action(user=user, action='register', object_type='user', object_id=user.id)
    logger.info("registered user %s", user.id)
    return Response(_token_payload(user), status=status.HTTP_201_CREATED)


register_view.cls.throttle_scope = 'register'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'ok': True, 'user': serialize_user(request.user)})


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    resp = TokenRefreshView.as_view()(request._request)
    if isinstance(resp, Response):
        data = dict(resp.data)
        if 'access' in data and 'jwt_access' not in data:
            data['jwt_access'] = data.pop('access')
        return Response(data, status=resp.status_code)
    return resp


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist one refresh token, or every outstanding token of the caller."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError as exc:
            return Response({'ok': False, 'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})
