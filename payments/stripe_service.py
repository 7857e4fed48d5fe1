"""
Stripe Service for MediSpatch

Creates payment intents through the Stripe REST API and verifies
webhook signatures.
API Reference: https://stripe.com/docs/api/payment_intents
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class StripeError(Exception):
    """Error reported by Stripe or raised while talking to it."""


class StripeService:
    """
    Stripe API integration.

    Flow:
    1. create_payment_intent -> client secret for the browser
    2. The browser confirms the card payment with Stripe
    3. Stripe calls our webhook with payment_intent.succeeded / payment_failed
    """

    @classmethod
    def _get_base_url(cls) -> str:
        return getattr(settings, 'STRIPE_API_URL', 'https://api.stripe.com/v1').rstrip('/')

    @staticmethod
    def _encode_metadata(metadata: Optional[dict]) -> dict:
        """Stripe expects form-encoded metadata[key]=value pairs."""
        return {f"metadata[{key}]": str(value) for key, value in (metadata or {}).items()}

    @classmethod
    def create_payment_intent(cls, amount: int, currency: str = 'usd', metadata: Optional[dict] = None) -> dict:
        """
        Create a card payment intent.

        Args:
            amount: Amount in the smallest currency unit
            currency: ISO currency code
            metadata: Free-form key/values (e.g. requestId)

        Returns:
            The payment intent object from Stripe

        Raises:
            StripeError: With Stripe's message when the call fails
        """
        secret_key = getattr(settings, 'STRIPE_SECRET_KEY', '')
        if not secret_key:
            logger.error("[PAYMENTS] Missing STRIPE_SECRET_KEY")
            raise StripeError("Payment provider is not configured")

        data = {
            'amount': amount,
            'currency': currency,
            'payment_method_types[]': 'card',
            **cls._encode_metadata(metadata),
        }

        try:
            response = requests.post(
                f"{cls._get_base_url()}/payment_intents",
                data=data,
                auth=(secret_key, ''),
                timeout=getattr(settings, 'STRIPE_TIMEOUT_SECONDS', 30)
            )
        except requests.RequestException as e:
            logger.error(f"[PAYMENTS] Payment intent request failed: {e}")
            raise StripeError(str(e)) from e

        if response.status_code >= 400:
            message = cls._error_message(response)
            logger.error(f"[PAYMENTS] Stripe rejected payment intent: {message}")
            raise StripeError(message)

        intent = response.json()
        logger.info(f"[PAYMENTS] Payment intent created: {intent.get('id')} ({amount} {currency})")
        return intent

    @staticmethod
    def _error_message(response) -> str:
        try:
            return response.json()['error']['message']
        except (ValueError, KeyError, TypeError):
            return f"Stripe returned HTTP {response.status_code}"

    # ============================================
    # WEBHOOKS
    # ============================================

    @staticmethod
    def _parse_signature_header(header: str):
        timestamp = None
        signatures = []
        for item in header.split(','):
            key, _, value = item.strip().partition('=')
            if key == 't':
                timestamp = value
            elif key == 'v1':
                signatures.append(value)
        return timestamp, signatures

    @classmethod
    def verify_signature(cls, payload: bytes, header: str, secret: Optional[str] = None,
                         tolerance: Optional[int] = None, now: Optional[float] = None) -> None:
        """
        Check a Stripe-Signature header (t=<ts>,v1=<hex hmac>).

        Raises:
            StripeError: If the header is malformed, no v1 signature matches,
                or the timestamp is outside the tolerance
        """
        secret = secret if secret is not None else getattr(settings, 'STRIPE_WEBHOOK_SECRET', '')
        tolerance = tolerance if tolerance is not None else getattr(settings, 'STRIPE_WEBHOOK_TOLERANCE_SECONDS', 300)

        if not secret:
            raise StripeError("Webhook secret is not configured")

        timestamp, signatures = cls._parse_signature_header(header or '')
        if not timestamp or not signatures:
            raise StripeError("Unable to extract timestamp and signatures from header")

        signed_payload = f"{timestamp}.".encode() + payload
        expected = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()

        if not any(hmac.compare_digest(expected, sig) for sig in signatures):
            raise StripeError("No signatures found matching the expected signature for payload")

        try:
            age = (now if now is not None else time.time()) - int(timestamp)
        except ValueError:
            raise StripeError("Invalid timestamp in signature header")
        if tolerance and age > tolerance:
            raise StripeError("Timestamp outside the tolerance zone")

    @classmethod
    def construct_event(cls, payload: bytes, header: str, **kwargs) -> dict:
        """Verify the signature and decode the event body."""
        cls.verify_signature(payload, header, **kwargs)
        try:
            return json.loads(payload)
        except ValueError as e:
            raise StripeError(f"Invalid payload: {e}") from e

    @staticmethod
    def sign_payload(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
        """Build a Stripe-Signature header value for a payload."""
        timestamp = int(timestamp if timestamp is not None else time.time())
        signature = hmac.new(
            secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256
        ).hexdigest()
        return f"t={timestamp},v1={signature}"
