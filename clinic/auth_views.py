"""
Authentication endpoints: registration, login, token refresh/logout and
the caller's own profile.

Login accepts an email, username or phone number as the identifier and
returns a simplejwt access/refresh pair.  The access token carries the
caller's ``role`` and ``hospital_id`` for the front-end; the server
always re-reads both from the database on each request.
"""
from __future__ import annotations

import logging

from django.db.models import Q
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.models import SELF_SERVICE_ROLES, Role, User
from clinic.serializers.auth import LoginSerializer, ProfileUpdateSerializer, RefreshSerializer, RegisterSerializer
from clinic.services.audit import log_action
from clinic.services.users import create_account, ensure_unique, serialize_user

logger = logging.getLogger(__name__)


def issue_tokens(user: User) -> dict:
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    refresh['hospital_id'] = user.hospital_id
    return {'access': str(refresh.access_token), 'refresh': str(refresh)}


def _find_user(identifier: str) -> User | None:
    ident = identifier.strip()
    return (User.objects
            .filter(Q(email=ident.lower()) | Q(username=ident.lower()) | Q(phone=ident))
            .order_by('id')
            .first())


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    """Self-service sign-up.  Only ``patient`` and ``guardian`` may be chosen;
    any other requested role is ignored."""
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    role = vd.get('role') if vd.get('role') in SELF_SERVICE_ROLES else Role.PATIENT
    user = create_account(
        password=vd['password'], role=role, full_name=vd['full_name'],
        email=vd.get('email'), phone=vd.get('phone'), username=vd.get('username'),
    )
    log_action(user=user, action='register', object_type='user', object_id=user.pk,
               detail={'role': role, 'ip': request.META.get('REMOTE_ADDR')})
    logger.info('registered user %s as %s', user.pk, role)
    return Response({'ok': True, 'user': serialize_user(user), **issue_tokens(user)}, status=201)


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    user = _find_user(vd['identifier'])
    if user is None or not user.is_active or not user.check_password(vd['password']):
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'identifier': vd['identifier'], 'ip': request.META.get('REMOTE_ADDR')})
        raise AuthenticationFailed('Invalid credentials')
    log_action(user=user, action='login', object_type='user', object_id=user.pk,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})
    return Response({'ok': True, 'user': serialize_user(user), **issue_tokens(user)})


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_view(request):
    """Exchange a refresh token for a new access token."""
    s = TokenRefreshSerializer(data=request.data)
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise InvalidToken(e.args[0])
    return Response({'ok': True, **s.validated_data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the caller."""
    s = RefreshSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    refresh = s.validated_data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError as e:
            raise ValidationError({'refresh': str(e)})
        if str(token.get('user_id')) != str(request.user.pk):
            raise ValidationError({'refresh': 'Token belongs to another user'})
        token.blacklist()
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.pk,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def me_view(request):
    user: User = request.user
    if request.method == 'GET':
        return Response({'ok': True, 'user': serialize_user(user)})
    s = ProfileUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    ensure_unique(email=vd.get('email'), phone=vd.get('phone'), exclude=user)
    for k, v in vd.items():
        setattr(user, k, v)
    user.save()
    log_action(user=user, action='profile.update', object_type='user', object_id=user.pk,
               detail={'fields': sorted(vd)})
    return Response({'ok': True, 'user': serialize_user(user)})
