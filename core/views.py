"""
Core App Views - User Management API
"""

from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.response import Response
from django.contrib.auth import get_user_model

from .serializers import UserSerializer, UserCreateSerializer, TwoFactorSetupSerializer
from .models import UserRole
from .two_factor import setup_two_factor

User = get_user_model()


class IsAdminUser(permissions.BasePermission):
    """Permission for admin users only."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.is_admin


class IsDriver(permissions.BasePermission):
    """Permission for driver users only."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == UserRole.DRIVER


class UserViewSet(viewsets.ModelViewSet):
    """
    ViewSet for User model.

    - List/Retrieve: Admin only
    - Create: Public (registration)
    - Update: Self only
    """

    queryset = User.objects.all()
    serializer_class = UserSerializer

    def get_permissions(self):
        if self.action == 'create':
            return [permissions.AllowAny()]
        elif self.action in ['list', 'destroy']:
            return [IsAdminUser()]
        return [permissions.IsAuthenticated()]

    def get_serializer_class(self):
        if self.action == 'create':
            return UserCreateSerializer
        return UserSerializer

    def get_queryset(self):
        user = self.request.user
        if user.is_authenticated and user.is_admin:
            return User.objects.all()
        if not user.is_authenticated:
            return User.objects.none()
        # Non-admin can only see their own profile
        return User.objects.filter(pk=user.pk)

    @action(detail=False, methods=['get'])
    def me(self, request):
        """Get current user profile."""
        serializer = self.get_serializer(request.user)
        return Response(serializer.data)

    @action(detail=False, methods=['get'], permission_classes=[IsAdminUser])
    def drivers(self, request):
        """List all driver accounts (Admin only)."""
        drivers = User.objects.filter(role=UserRole.DRIVER)
        serializer = self.get_serializer(drivers, many=True)
        return Response(serializer.data)


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def two_factor_setup(request):
    """
    Provision a TOTP secret.

    POST /api/auth/2fa/setup/
    Body: {"userId": "<uuid>"} (optional, admins only for other users)
    """
    serializer = TwoFactorSetupSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    user_id = serializer.validated_data.get('userId')
    target = request.user

    if user_id and user_id != request.user.pk:
        if not request.user.is_admin:
            return Response(
                {'error': 'Not allowed to configure 2FA for another user'},
                status=status.HTTP_403_FORBIDDEN
            )
        try:
            target = User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        payload = setup_two_factor(target)
    except Exception as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(payload)
