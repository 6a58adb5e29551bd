"""
Authentication views for dashboard users.
Handles login, register, token refresh, and user profile.
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from audits.models import Audit
from local_seo.models import LocalCampaign
from rankwell_backend.exceptions import error_response, validation_error_response
from .serializers import LoginSerializer, RegisterSerializer, UserSerializer

logger = logging.getLogger(__name__)


def _token_payload(user):
    refresh = RefreshToken.for_user(user)
    return {
        'token': str(refresh.access_token),
        'refresh_token': str(refresh),
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """
    User login endpoint.

    POST /api/v1/auth/login/
    Body: { "email": "user@example.com", "password": "password123" }

    Returns: { "token": "...", "refresh_token": "...", "user": {...} }
    """
    serializer = LoginSerializer(data=request.data)

    if serializer.is_valid():
        user = serializer.validated_data['user']
        return Response({
            'message': 'Login successful',
            **_token_payload(user),
            'user': UserSerializer(user).data
        }, status=status.HTTP_200_OK)

    return validation_error_response(serializer.errors)


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """
    User registration endpoint.

    POST /api/v1/auth/register/
    Body: { "email": "...", "password": "...", "name": "..." (optional) }
    """
    serializer = RegisterSerializer(data=request.data)

    if serializer.is_valid():
        user = serializer.save()
        logger.info("Registered user %s", user.id)
        return Response({
            'message': 'Registration successful',
            **_token_payload(user),
            'user': UserSerializer(user).data
        }, status=status.HTTP_201_CREATED)

    return validation_error_response(serializer.errors)


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh(request):
    """
    Exchange a refresh token for a new access token.

    POST /api/v1/auth/refresh/
    Body: { "refresh_token": "..." }
    """
    raw = request.data.get('refresh_token')
    if not raw:
        return error_response('MISSING_PARAM', 'refresh_token is required.', status.HTTP_400_BAD_REQUEST)
    try:
        token = RefreshToken(raw)
    except TokenError as e:
        logger.warning("Token refresh failed: %s", e)
        return error_response('UNAUTHORIZED', 'Invalid or expired refresh token.', status.HTTP_401_UNAUTHORIZED)
    return Response({'token': str(token.access_token)})


def _usage(user):
    """Counts of the user's tracked work, for the dashboard header."""
    return {
        'domains': user.domains.count(),
        'audits': user.audits.count(),
        'audits_in_progress': user.audits.filter(status__in=Audit.IN_PROGRESS_STATUSES).count(),
        'site_audit_scans': user.site_audit_scans.count(),
        'local_campaigns': user.local_campaigns.exclude(status=LocalCampaign.STATUS_ARCHIVED).count(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    """
    Get current authenticated user and their usage counts.

    GET /api/v1/auth/me/
    Headers: Authorization: Bearer <token>
    """
    return Response({
        'user': UserSerializer(request.user).data,
        'usage': _usage(request.user),
    })
