"""
CORE App - Custom User Model for MediSpatch

Handles: Users (Admins, Customers, Drivers) and 2FA secrets
"""

import uuid
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models


class UserRole(models.TextChoices):
    """User role enumeration."""
    ADMIN = 'ADMIN', 'Administrator'
    CUSTOMER = 'CUSTOMER', 'Customer'
    DRIVER = 'DRIVER', 'Driver'


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('An email address is required')

        user = self.model(email=self.normalize_email(email), **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', UserRole.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as primary identifier.

    Roles drive which portal a user sees:
    - ADMIN: dashboard (approve/decline, assign drivers, Slack settings)
    - CUSTOMER: request submission and tracking
    - DRIVER: driver portal (own deliveries, proof of delivery)
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, verbose_name="Email")

    # Profile
    full_name = models.CharField(max_length=150, blank=True, verbose_name="Full name")
    phone_number = models.CharField(max_length=30, blank=True, verbose_name="Phone")
    company_name = models.CharField(max_length=200, blank=True, verbose_name="Company")
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CUSTOMER,
        verbose_name="Role"
    )

    # Django Auth Fields
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(auto_now_add=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        ordering = ['-date_joined']

    def __str__(self):
        return f"{self.full_name or self.email} ({self.role})"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN or self.is_superuser

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.DRIVER


class TwoFactorSecret(models.Model):
    """
    TOTP secret provisioned for a user.

    One row per user; re-running the setup replaces the secret and
    resets verification.
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='two_factor',
        verbose_name="User"
    )
    secret = models.CharField(max_length=64, verbose_name="Base32 secret")
    is_verified = models.BooleanField(default=False, verbose_name="Verified")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "2FA secret"
        verbose_name_plural = "2FA secrets"

    def __str__(self):
        state = "verified" if self.is_verified else "pending"
        return f"2FA {self.user.email} ({state})"
