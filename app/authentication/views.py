"""
API views for authentication.

URL structure (mounted at /api/v1/auth/):
    register/        POST  Create account
    login/           POST  Obtain JWT pair (+ user payload)
    token/refresh/   POST  Refresh access token
    logout/          POST  Blacklist refresh token
    profile/         GET   Current user
"""

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from authentication.models import User
from authentication.serializers import (
    LogoutSerializer,
    RegisterSerializer,
    SchoolTokenObtainPairSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)


class RegisterView(APIView):
    """
    API view for account registration.

    POST: Create a user with role and school scope

    URL: /api/v1/auth/register/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Register",
        tags=["Auth"],
        request=RegisterSerializer,
        responses={
            201: UserSerializer,
            400: OpenApiResponse(description="Validation error or user exists"),
        },
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if User.objects.filter(email__iexact=data["email"]).exists():
            logger.warning(
                "Registration rejected: email already registered",
                extra={"email": data["email"]},
            )
            return Response(
                {
                    "error": "User with this email already exists",
                    "error_code": "USER_EXISTS",
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        user = User.objects.create_user(
            email=data["email"],
            password=data["password"],
            role=data["role"],
            school_id=data.get("school_id", ""),
            trustee_id=data.get("trustee_id", ""),
        )
        logger.info(
            "User registered",
            extra={"user_id": user.pk, "role": user.role, "school_id": user.school_id},
        )
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@extend_schema(summary="Log in", tags=["Auth"])
class LoginView(TokenObtainPairView):
    """
    Authenticate with email and password.

    Returns ``{access, refresh, user}``; the access token carries role and
    school_id claims.
    """

    serializer_class = SchoolTokenObtainPairSerializer


class LogoutView(APIView):
    """
    Invalidate a refresh token.

    URL: /api/v1/auth/logout/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Log out",
        tags=["Auth"],
        request=LogoutSerializer,
        responses={205: None, 400: OpenApiResponse(description="Invalid token")},
    )
    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            RefreshToken(serializer.validated_data["refresh"]).blacklist()
        except TokenError as e:
            return Response(
                {"error": str(e), "error_code": "INVALID_TOKEN"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(status=status.HTTP_205_RESET_CONTENT)


class ProfileView(APIView):
    """
    Current user profile.

    URL: /api/v1/auth/profile/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Get current user", tags=["Auth"], responses=UserSerializer)
    def get(self, request):
        return Response(UserSerializer(request.user).data)
