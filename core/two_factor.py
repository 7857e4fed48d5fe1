"""
Two-factor provisioning for MediSpatch.

Generates a TOTP secret, stores it against the user (unverified) and
builds the otpauth:// URL that authenticator apps read from a QR code.
"""

import logging
import secrets
from urllib.parse import quote

from django.conf import settings

from .models import TwoFactorSecret

logger = logging.getLogger(__name__)

BASE32_ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ234567'
SECRET_LENGTH = 32


def generate_totp_secret(length: int = SECRET_LENGTH) -> str:
    return ''.join(secrets.choice(BASE32_ALPHABET) for _ in range(length))


def build_otpauth_url(account: str, secret: str, issuer: str = None) -> str:
    issuer = issuer or settings.TWO_FACTOR_ISSUER
    label = f"{quote(issuer)}:{quote(str(account))}"
    return f"otpauth://totp/{label}?secret={secret}&issuer={quote(issuer)}"


def setup_two_factor(user) -> dict:
    """
    Provision (or re-provision) a TOTP secret for a user.

    Returns the payload the client renders: secret, QR code URL and the
    manual entry key.
    """
    secret = generate_totp_secret()

    TwoFactorSecret.objects.update_or_create(
        user=user,
        defaults={'secret': secret, 'is_verified': False},
    )
    logger.info(f"[2FA] Secret provisioned for user {user.pk}")

    return {
        'success': True,
        'secret': secret,
        'qrCodeUrl': build_otpauth_url(user.pk, secret),
        'manualEntryKey': secret,
    }
