import logging
import secrets
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes, throttle_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.throttling import AnonRateThrottle
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils.crypto import get_random_string
from .authentication import build_refresh_token, classify_token
from .exceptions import AuthError, NotFoundError, ValidationError
from .filters import AuditLogFilter
from .models import AuditLog
from .permissions import DASHBOARD_ACCESS, capability, role_of
from .serializers import (
    UserSerializer, UserCreateSerializer, LoginSerializer, FullNameSerializer, AuditLogSerializer
)
from .utils import create_audit_log, diff_changes, paginate, snapshot, visible_project_ids

logger = logging.getLogger(__name__)

User = get_user_model()

USER_AUDIT_FIELDS = ['username', 'email', 'full_name', 'role', 'phone', 'is_active']

PASSWORD_UPPER = 'ABCDEFGHJKLMNPQRSTUVWXYZ'
PASSWORD_LOWER = 'abcdefghijkmnopqrstuvwxyz'
PASSWORD_DIGITS = '23456789'
PASSWORD_SYMBOLS = '!@#$%&*?'


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


def _set_session_cookies(response, refresh):
    cookie_options = {
        'httponly': True,
        'secure': settings.AUTH_COOKIE_SECURE,
        'samesite': settings.AUTH_COOKIE_SAMESITE,
    }
    response.set_cookie(settings.AUTH_COOKIE_NAME, str(refresh.access_token),
                        max_age=settings.AUTH_COOKIE_MAX_AGE, **cookie_options)
    response.set_cookie(settings.AUTH_REFRESH_COOKIE_NAME, str(refresh),
                        max_age=int(settings.SIMPLE_JWT['REFRESH_TOKEN_LIFETIME'].total_seconds()),
                        **cookie_options)
    return response


def _clear_session_cookies(response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME, samesite=settings.AUTH_COOKIE_SAMESITE)
    response.delete_cookie(settings.AUTH_REFRESH_COOKIE_NAME, samesite=settings.AUTH_COOKIE_SAMESITE)
    return response


# Auth views
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login(request):
    """Check credentials and start a cookie session"""
    serializer = LoginSerializer(data=request.data)
    if not serializer.is_valid():
        raise ValidationError('Email and password are required.', errors=serializer.errors)

    user = User.objects.filter(email__iexact=serializer.validated_data['email']).first()
    if user is None or not user.is_active or not user.check_password(serializer.validated_data['password']):
        logger.warning(f"Failed login for {serializer.validated_data['email']}")
        return Response({'status': 'failed', 'message': 'Invalid Credentials'}, status=status.HTTP_401_UNAUTHORIZED)

    User.objects.filter(pk=user.pk).update(is_online=True)
    user.is_online = True

    refresh = build_refresh_token(user)
    response = Response({
        'status': 'success',
        'message': 'Logged in successfully',
        'role': user.role,
        'user': UserSerializer(user).data,
    })
    logger.info(f"User {user.pk} logged in")
    return _set_session_cookies(response, refresh)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def refresh_session(request):
    """Issue a fresh access cookie from the refresh cookie"""
    raw_refresh = request.COOKIES.get(settings.AUTH_REFRESH_COOKIE_NAME) or request.data.get('refresh')
    if not raw_refresh:
        raise AuthError(AuthError.MISSING)
    try:
        old_refresh = RefreshToken(raw_refresh)
    except TokenError:
        raise AuthError(AuthError.INVALID, 'Token is invalid or expired.')

    user = User.objects.filter(pk=old_refresh.get(settings.SIMPLE_JWT['USER_ID_CLAIM']), is_active=True).first()
    if user is None:
        raise AuthError(AuthError.INVALID, 'Token is invalid. User no longer exists.')

    response = Response({'status': 'success', 'message': 'Session refreshed', 'role': user.role})
    return _set_session_cookies(response, build_refresh_token(user))


@api_view(['POST', 'GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def logout(request):
    """Clear the session cookies and mark the user offline"""
    raw_token = request.COOKIES.get(settings.AUTH_COOKIE_NAME)
    if raw_token:
        try:
            _, token = classify_token(raw_token)
            User.objects.filter(pk=token[settings.SIMPLE_JWT['USER_ID_CLAIM']]).update(is_online=False)
        except AuthError:
            # classify_token already marked an expired session offline
            pass
    response = Response({'status': 'success', 'message': 'Logged out successfully.'})
    return _clear_session_cookies(response)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def check_token(request):
    """Tell the client whether its session cookie is usable"""
    raw_token = request.COOKIES.get(settings.AUTH_COOKIE_NAME)
    if not raw_token:
        return Response({'status': 'success', 'message': 'No token Exists'})
    try:
        classify_token(raw_token)
    except AuthError as exc:
        response = Response({'status': exc.status_label, 'message': str(exc.detail)}, status=exc.status_code)
        if exc.status_label == AuthError.EXPIRED:
            _clear_session_cookies(response)
        return response
    return Response({'status': 'success', 'message': 'Valid Token'})


# Profile views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def profile(request):
    """Current user with the projects they are assigned to"""
    data = UserSerializer(request.user).data
    data['projects'] = list(request.user.assigned_projects.values('id', 'name'))
    return Response(data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_full_name(request):
    serializer = FullNameSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = request.user
    before = snapshot(user, ['full_name'])
    with transaction.atomic():
        user.full_name = serializer.validated_data['full_name']
        user.save(update_fields=['full_name', 'updated_at'])
        create_audit_log(
            request=request,
            action='edit',
            entity_type='User',
            object_id=user.pk,
            object_name='updated their name',
            changes=diff_changes(before, snapshot(user, ['full_name'])),
        )
    return Response(UserSerializer(user).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def access(request):
    """Dashboard sections the caller's role may open"""
    return Response(DASHBOARD_ACCESS.get(role_of(request.user), []))


# Personnel views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, capability('personnel.manage')])
def user_list_create(request):
    """List all personnel or create a new account"""
    if request.method == 'GET':
        users = User.objects.all().order_by('full_name', 'username')
        role = request.query_params.get('role')
        if role:
            users = users.filter(role=role)
        project = request.query_params.get('project')
        if project:
            users = users.filter(assigned_projects__id=project)
        return Response(UserSerializer(users, many=True).data)

    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            user = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                entity_type='User',
                object_id=user.pk,
                object_name=f"created personnel {user.full_name or user.username}",
            )
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, capability('personnel.manage')])
def user_detail(request, pk):
    """Retrieve, update or remove a personnel account"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            before = snapshot(user, USER_AUDIT_FIELDS)
            with transaction.atomic():
                user = serializer.save()
                create_audit_log(
                    request=request,
                    action='edit',
                    entity_type='User',
                    object_id=user.pk,
                    object_name=f"edited personnel {user.full_name or user.username}",
                    changes=diff_changes(before, snapshot(user, USER_AUDIT_FIELDS)),
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE deactivates; the account stays so history keeps its actor
    if user.pk == request.user.pk:
        raise ValidationError('You cannot remove your own account.')
    if not user.is_active:
        raise NotFoundError('Personnel account is already removed.')
    before = snapshot(user, USER_AUDIT_FIELDS)
    with transaction.atomic():
        User.objects.filter(pk=user.pk).update(is_active=False, is_online=False)
        user.refresh_from_db()
        create_audit_log(
            request=request,
            action='delete',
            entity_type='User',
            object_id=user.pk,
            object_name=f"removed personnel {user.full_name or user.username}",
            changes=diff_changes(before, snapshot(user, USER_AUDIT_FIELDS)),
        )
    logger.info(f"User {user.pk} deactivated by user {request.user.pk}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, capability('personnel.manage')])
def generate_password(request):
    """Random password for a new account; delivering it is up to the admin"""
    parts = [
        get_random_string(4, PASSWORD_UPPER),
        get_random_string(4, PASSWORD_LOWER),
        get_random_string(4, PASSWORD_DIGITS),
        get_random_string(2, PASSWORD_SYMBOLS),
    ]
    chars = list(''.join(parts))
    secrets.SystemRandom().shuffle(chars)
    return Response({'password': ''.join(chars)})


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('log.view')])
def audit_log_list(request):
    """Activity feed, limited to the caller's projects and global entries"""
    queryset = AuditLog.objects.select_related('user', 'project').order_by('-created_at', '-id')

    visible = visible_project_ids(request.user)
    if visible is not None:
        queryset = queryset.filter(Q(project__isnull=True) | Q(project_id__in=visible))

    filterset = AuditLogFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        raise ValidationError('Invalid log filters.', errors=filterset.errors)

    return Response(paginate(request, filterset.qs, AuditLogSerializer))


@api_view(['GET'])
@permission_classes([IsAuthenticated, capability('log.view')])
def audit_log_detail(request, pk):
    """Retrieve one log entry with its before/after pairs"""
    audit_log = get_object_or_404(AuditLog.objects.select_related('user', 'project'), pk=pk)

    visible = visible_project_ids(request.user)
    if visible is not None and audit_log.project_id is not None and audit_log.project_id not in visible:
        return Response({'status': 'forbidden', 'message': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    return Response(AuditLogSerializer(audit_log).data)
