"""
MediSpatch Payments Tests
==========================

Tests for:
1. Payment intent creation (validation, Stripe call, provider errors)
2. Stripe-Signature verification
3. Webhook event storage and payment recording
"""

import json
import time
from unittest.mock import patch, MagicMock

import requests
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from logistics.services import lifecycle
from payments.models import Payment, PaymentStatus, PaymentWebhookEvent
from payments.stripe_service import StripeService, StripeError

WEBHOOK_SECRET = 'whsec_test_secret'


def stripe_response(status_code=200, payload=None):
    response = MagicMock(status_code=status_code)
    response.json.return_value = payload or {}
    return response


@override_settings(STRIPE_SECRET_KEY='sk_test_123')
class TestCreatePaymentIntent(TestCase):
    """Tests for POST /api/payments/create-intent/"""

    def setUp(self):
        self.client = APIClient()
        self.url = '/api/payments/create-intent/'

    def test_missing_amount(self):
        response = self.client.post(self.url, {}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Invalid amount'})

    def test_non_positive_amount(self):
        for amount in (0, -100, 'abc'):
            response = self.client.post(self.url, {'amount': amount}, format='json')
            self.assertEqual(response.status_code, 400, amount)

    @patch('payments.stripe_service.requests.post')
    def test_fractional_amount_rejected(self, mock_post):
        for amount in (25.5, '25.5', True):
            response = self.client.post(self.url, {'amount': amount}, format='json')
            self.assertEqual(response.status_code, 400, amount)
            self.assertEqual(response.json(), {'error': 'Invalid amount'})
        mock_post.assert_not_called()

    @patch('payments.stripe_service.requests.post')
    def test_nested_metadata_rejected(self, mock_post):
        response = self.client.post(self.url, {
            'amount': 2500, 'metadata': {'order': {'id': 1}},
        }, format='json')
        self.assertEqual(response.status_code, 400)
        mock_post.assert_not_called()

    @patch('payments.stripe_service.requests.post')
    def test_integer_string_amount_accepted(self, mock_post):
        mock_post.return_value = stripe_response(200, {'id': 'pi_1', 'client_secret': 's'})
        response = self.client.post(self.url, {'amount': '2500'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(mock_post.call_args.kwargs['data']['amount'], 2500)

    @patch('payments.stripe_service.requests.post')
    def test_creates_intent(self, mock_post):
        mock_post.return_value = stripe_response(200, {
            'id': 'pi_123', 'client_secret': 'pi_123_secret_abc',
        })

        response = self.client.post(self.url, {
            'amount': 2500, 'metadata': {'requestId': 'abc'},
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            'clientSecret': 'pi_123_secret_abc', 'paymentIntentId': 'pi_123',
        })

        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], 'https://api.stripe.com/v1/payment_intents')
        self.assertEqual(kwargs['data']['amount'], 2500)
        self.assertEqual(kwargs['data']['currency'], 'usd')
        self.assertEqual(kwargs['data']['metadata[requestId]'], 'abc')
        self.assertEqual(kwargs['auth'], ('sk_test_123', ''))
        self.assertEqual(kwargs['timeout'], 30)

    @patch('payments.stripe_service.requests.post')
    def test_provider_error_returns_500(self, mock_post):
        mock_post.return_value = stripe_response(402, {
            'error': {'message': 'Your card was declined.'},
        })

        response = self.client.post(self.url, {'amount': 2500}, format='json')

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'error': 'Your card was declined.'})

    @patch('payments.stripe_service.requests.post')
    def test_network_error_returns_500(self, mock_post):
        mock_post.side_effect = requests.ConnectionError('unreachable')
        response = self.client.post(self.url, {'amount': 2500}, format='json')
        self.assertEqual(response.status_code, 500)

    @override_settings(STRIPE_SECRET_KEY='')
    def test_missing_secret_key(self):
        with self.assertRaises(StripeError):
            StripeService.create_payment_intent(100)


class TestSignatureVerification(TestCase):
    """Tests for Stripe-Signature checking."""

    def setUp(self):
        self.payload = b'{"id": "evt_1"}'

    def test_valid_signature(self):
        header = StripeService.sign_payload(self.payload, WEBHOOK_SECRET)
        StripeService.verify_signature(self.payload, header, secret=WEBHOOK_SECRET)

    def test_tampered_payload(self):
        header = StripeService.sign_payload(self.payload, WEBHOOK_SECRET)
        with self.assertRaises(StripeError):
            StripeService.verify_signature(b'{"id": "evt_2"}', header, secret=WEBHOOK_SECRET)

    def test_wrong_secret(self):
        header = StripeService.sign_payload(self.payload, 'whsec_other')
        with self.assertRaises(StripeError):
            StripeService.verify_signature(self.payload, header, secret=WEBHOOK_SECRET)

    def test_expired_timestamp(self):
        old = int(time.time()) - 3600
        header = StripeService.sign_payload(self.payload, WEBHOOK_SECRET, timestamp=old)
        with self.assertRaises(StripeError):
            StripeService.verify_signature(self.payload, header, secret=WEBHOOK_SECRET, tolerance=300)

    def test_malformed_header(self):
        with self.assertRaises(StripeError):
            StripeService.verify_signature(self.payload, 'garbage', secret=WEBHOOK_SECRET)


@override_settings(STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET)
class TestStripeWebhook(TestCase):
    """Tests for POST /api/payments/webhook/"""

    def setUp(self):
        self.client = APIClient()
        self.url = '/api/payments/webhook/'
        self.delivery = lifecycle.create_request(pickup_location='A', delivery_location='B')

    def event(self, event_type, event_id='evt_1', **intent):
        data = {
            'id': 'pi_123',
            'amount': 4550,
            'currency': 'usd',
            'status': 'succeeded',
            'payment_method_types': ['card'],
            'metadata': {'requestId': str(self.delivery.pk)},
        }
        data.update(intent)
        return {'id': event_id, 'type': event_type, 'data': {'object': data}}

    def post_event(self, event, secret=WEBHOOK_SECRET):
        body = json.dumps(event).encode()
        return self.client.generic(
            'POST', self.url, body,
            content_type='application/json',
            HTTP_STRIPE_SIGNATURE=StripeService.sign_payload(body, secret),
        )

    def test_missing_signature(self):
        response = self.client.post(self.url, {}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_invalid_signature(self):
        response = self.post_event(self.event('payment_intent.succeeded'), secret='whsec_wrong')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(PaymentWebhookEvent.objects.exists())

    def test_succeeded_records_payment(self):
        response = self.post_event(self.event('payment_intent.succeeded'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'received': True})

        payment = Payment.objects.get(payment_intent_id='pi_123')
        self.assertEqual(payment.amount, 4550)
        self.assertEqual(payment.status, PaymentStatus.SUCCEEDED)
        self.assertEqual(payment.payment_method, 'card')
        self.assertEqual(payment.delivery, self.delivery)

        event = PaymentWebhookEvent.objects.get(stripe_event_id='evt_1')
        self.assertTrue(event.processed)
        self.assertEqual(event.processing_error, '')

    def test_failed_records_failure(self):
        self.post_event(self.event('payment_intent.payment_failed', status='requires_payment_method'))
        payment = Payment.objects.get(payment_intent_id='pi_123')
        self.assertEqual(payment.status, PaymentStatus.FAILED)

    def test_unhandled_event_is_stored(self):
        response = self.post_event(self.event('charge.refunded'))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(PaymentWebhookEvent.objects.get(stripe_event_id='evt_1').processed)
        self.assertFalse(Payment.objects.exists())

    def test_duplicate_event_is_ignored(self):
        self.post_event(self.event('payment_intent.succeeded'))
        self.post_event(self.event('payment_intent.succeeded'))
        self.assertEqual(PaymentWebhookEvent.objects.count(), 1)
        self.assertEqual(Payment.objects.count(), 1)

    def test_handler_error_is_kept_on_event(self):
        bad = self.event('payment_intent.succeeded')
        del bad['data']['object']['id']

        response = self.post_event(bad)

        self.assertEqual(response.status_code, 200)
        event = PaymentWebhookEvent.objects.get(stripe_event_id='evt_1')
        self.assertTrue(event.processed)
        self.assertNotEqual(event.processing_error, '')
