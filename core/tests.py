"""
MediSpatch Core Tests
=====================

Tests for:
1. Custom User Model (creation, roles)
2. Two-factor secret provisioning
3. Health endpoints
"""

import re
import uuid

from django.test import TestCase
from rest_framework.test import APIClient

from core.models import User, UserRole, TwoFactorSecret
from core.two_factor import generate_totp_secret, build_otpauth_url


class TestUserModel(TestCase):
    """Tests for the custom User model."""

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@medispatch.test',
            password='testpass123',
            role=UserRole.ADMIN,
            full_name='Admin Test',
        )
        self.driver = User.objects.create_user(
            email='driver@medispatch.test',
            password='testpass123',
            role=UserRole.DRIVER,
            full_name='Driver Test',
        )
        self.customer = User.objects.create_user(
            email='customer@medispatch.test',
            password='testpass123',
            full_name='Customer Test',
            company_name='Northside Clinic',
        )

    # ==========================================
    # User Creation Tests
    # ==========================================

    def test_user_creation_with_email(self):
        """User should be created with email as identifier."""
        self.assertEqual(self.driver.email, 'driver@medispatch.test')
        self.assertTrue(self.driver.check_password('testpass123'))

    def test_user_uuid_primary_key(self):
        self.assertIsInstance(self.driver.id, uuid.UUID)

    def test_default_role_is_customer(self):
        self.assertEqual(self.customer.role, UserRole.CUSTOMER)

    def test_role_properties(self):
        self.assertTrue(self.admin.is_admin)
        self.assertFalse(self.customer.is_admin)
        self.assertTrue(self.driver.is_driver)
        self.assertFalse(self.admin.is_driver)

    def test_superuser_creation(self):
        """Superuser should have is_staff, is_superuser and ADMIN role."""
        superuser = User.objects.create_superuser(
            email='root@medispatch.test',
            password='superpass123',
        )
        self.assertTrue(superuser.is_staff)
        self.assertTrue(superuser.is_superuser)
        self.assertEqual(superuser.role, UserRole.ADMIN)

    def test_email_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='x')

    def test_duplicate_email_rejected(self):
        from django.db import IntegrityError
        with self.assertRaises(IntegrityError):
            User.objects.create_user(
                email='driver@medispatch.test',
                password='testpass123',
            )

    def test_user_str_representation(self):
        self.assertEqual(str(self.driver), 'Driver Test (DRIVER)')


class TestTwoFactorSetup(TestCase):
    """Tests for TOTP secret provisioning."""

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            email='user@medispatch.test',
            password='testpass123',
        )
        self.other = User.objects.create_user(
            email='other@medispatch.test',
            password='testpass123',
        )
        self.admin = User.objects.create_user(
            email='admin@medispatch.test',
            password='testpass123',
            role=UserRole.ADMIN,
        )

    def test_secret_is_32_base32_characters(self):
        secret = generate_totp_secret()
        self.assertEqual(len(secret), 32)
        self.assertTrue(re.fullmatch(r'[A-Z2-7]{32}', secret))

    def test_otpauth_url_format(self):
        url = build_otpauth_url('abc', 'SECRET', issuer='MediSpatch')
        self.assertEqual(
            url, 'otpauth://totp/MediSpatch:abc?secret=SECRET&issuer=MediSpatch'
        )

    def test_setup_defaults_to_caller(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post('/api/auth/2fa/setup/', {}, format='json')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['secret'], data['manualEntryKey'])
        self.assertIn(f"MediSpatch:{self.user.pk}", data['qrCodeUrl'])

        stored = TwoFactorSecret.objects.get(user=self.user)
        self.assertEqual(stored.secret, data['secret'])
        self.assertFalse(stored.is_verified)

    def test_setup_upserts_and_resets_verification(self):
        TwoFactorSecret.objects.create(user=self.user, secret='OLD', is_verified=True)
        self.client.force_authenticate(user=self.user)

        response = self.client.post('/api/auth/2fa/setup/', {}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(TwoFactorSecret.objects.filter(user=self.user).count(), 1)
        stored = TwoFactorSecret.objects.get(user=self.user)
        self.assertNotEqual(stored.secret, 'OLD')
        self.assertFalse(stored.is_verified)

    def test_non_admin_cannot_setup_other_user(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.post(
            '/api/auth/2fa/setup/', {'userId': str(self.other.pk)}, format='json'
        )
        self.assertEqual(response.status_code, 403)

    def test_admin_can_setup_other_user(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            '/api/auth/2fa/setup/', {'userId': str(self.other.pk)}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(TwoFactorSecret.objects.filter(user=self.other).exists())

    def test_setup_requires_authentication(self):
        response = self.client.post('/api/auth/2fa/setup/', {}, format='json')
        self.assertEqual(response.status_code, 401)


class TestHealthEndpoints(TestCase):
    """Tests for the monitoring endpoints."""

    def test_health_endpoint_accessible(self):
        """Health check should be accessible without auth."""
        for path in ('/health', '/health/'):
            response = self.client.get(path)
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json()['status'], 'ok')

    def test_readiness_endpoint_reports_checks(self):
        response = self.client.get('/health/ready/')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['checks']['database']['status'], 'healthy')
        self.assertEqual(data['checks']['cache']['status'], 'healthy')

    def test_detailed_health_requires_staff(self):
        response = self.client.get('/health/detailed/')
        self.assertEqual(response.status_code, 403)
