"""
Core App Serializers - User Management
"""

from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model (read operations)."""

    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'phone_number', 'company_name',
            'role', 'is_active', 'date_joined'
        ]
        read_only_fields = ['id', 'date_joined']


class UserCreateSerializer(serializers.ModelSerializer):
    """Serializer for user registration."""

    password = serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password]
    )

    class Meta:
        model = User
        fields = ['email', 'password', 'full_name', 'phone_number', 'company_name', 'role']

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, **validated_data)


class TwoFactorSetupSerializer(serializers.Serializer):
    """Optional target user for the 2FA setup (defaults to the caller)."""

    userId = serializers.UUIDField(required=False)
