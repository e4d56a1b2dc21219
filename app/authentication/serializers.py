"""
Serializers for authentication endpoints.

- RegisterSerializer: account creation with role and school scope
- UserSerializer: current-user projection
- SchoolTokenObtainPairSerializer: JWT pair carrying role/school_id claims
- LogoutSerializer: refresh token to blacklist
"""

from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from authentication.models import User, UserRole


class UserSerializer(serializers.ModelSerializer):
    """Read-only view of the authenticated user."""

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "role",
            "school_id",
            "trustee_id",
            "is_active",
            "last_login",
            "date_joined",
        ]
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    """
    Validate a registration request.

    School-scoped roles must name their school; admins may leave it blank.
    """

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6)
    role = serializers.ChoiceField(choices=UserRole.choices, default=UserRole.USER)
    school_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    trustee_id = serializers.CharField(max_length=100, required=False, allow_blank=True)

    def validate_email(self, value):
        return value.strip().lower()

    def validate_password(self, value):
        validate_password(value)
        return value

    def validate(self, attrs):
        if attrs.get("role") != UserRole.ADMIN and not attrs.get("school_id"):
            raise serializers.ValidationError(
                {"school_id": ["School ID is required for this role."]}
            )
        return attrs


class SchoolTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Token pair whose claims carry the caller's tenant scope.

    Downstream services can read role/school_id from the token without a
    user lookup; the API itself still authorizes against the database user.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["email"] = user.email
        token["role"] = user.role
        token["school_id"] = user.school_id
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data["user"] = UserSerializer(self.user).data
        return data


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()
