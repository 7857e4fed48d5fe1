"""
Card Payment API for MediSpatch

REST endpoints for creating Stripe payment intents and receiving
Stripe webhooks.
"""

import logging

from django.db import transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from logistics.services.lifecycle import get_by_tracking_id
from .models import Payment, PaymentStatus, PaymentWebhookEvent
from .stripe_service import StripeService, StripeError

logger = logging.getLogger(__name__)


def _parse_amount(value) -> int:
    """Whole smallest-unit amount, or 0 when value is not an integer."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else 0
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value)
    return 0


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def create_payment_intent(request):
    """
    Create a card payment intent.

    POST /api/payments/create-intent/

    Body:
    {
        "amount": 2500,              # smallest currency unit
        "currency": "usd",
        "metadata": {"requestId": "uuid"}
    }

    Returns:
    {
        "clientSecret": "pi_..._secret_...",
        "paymentIntentId": "pi_..."
    }
    """
    amount = _parse_amount(request.data.get('amount'))
    currency = request.data.get('currency') or 'usd'
    metadata = request.data.get('metadata') or {}

    if amount <= 0:
        return Response({'error': 'Invalid amount'}, status=status.HTTP_400_BAD_REQUEST)
    if not isinstance(metadata, dict):
        return Response({'error': 'metadata must be an object'}, status=status.HTTP_400_BAD_REQUEST)
    # Stripe metadata is flat key/value strings
    if any(isinstance(value, (dict, list)) for value in metadata.values()):
        return Response({'error': 'metadata values must be strings or numbers'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        intent = StripeService.create_payment_intent(amount, currency, metadata)
    except StripeError as e:
        return Response(
            {'error': str(e) or 'Failed to create payment intent'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return Response({
        'clientSecret': intent.get('client_secret'),
        'paymentIntentId': intent.get('id'),
    })


# ============================================
# WEBHOOK
# ============================================

def _record_payment(intent: dict, payment_status: str) -> Payment:
    metadata = intent.get('metadata') or {}
    request_id = metadata.get('requestId')
    delivery = get_by_tracking_id(str(request_id)) if request_id else None

    method_types = intent.get('payment_method_types') or []
    payment, _ = Payment.objects.update_or_create(
        payment_intent_id=intent['id'],
        defaults={
            'amount': intent.get('amount') or 0,
            'currency': intent.get('currency') or 'usd',
            'status': payment_status,
            'payment_method': method_types[0] if method_types else '',
            'delivery': delivery,
        }
    )
    return payment


def handle_payment_succeeded(intent: dict) -> Payment:
    payment = _record_payment(intent, intent.get('status') or PaymentStatus.SUCCEEDED)
    logger.info(f"[PAYMENTS] Payment {payment.payment_intent_id} succeeded")
    return payment


def handle_payment_failed(intent: dict) -> Payment:
    payment = _record_payment(intent, PaymentStatus.FAILED)
    logger.info(f"[PAYMENTS] Payment {payment.payment_intent_id} failed")
    return payment


EVENT_HANDLERS = {
    'payment_intent.succeeded': handle_payment_succeeded,
    'payment_intent.payment_failed': handle_payment_failed,
}


def process_event(webhook_event: PaymentWebhookEvent) -> PaymentWebhookEvent:
    """
    Run the handler for a stored event and mark it processed.

    Handler errors are kept on the event, not raised.
    """
    handler = EVENT_HANDLERS.get(webhook_event.stripe_event_type)
    if handler is not None:
        intent = (webhook_event.event_data.get('data') or {}).get('object') or {}
        try:
            with transaction.atomic():
                handler(intent)
        except Exception as e:
            logger.exception(f"[PAYMENTS] Handler failed for {webhook_event.stripe_event_id}: {e}")
            webhook_event.processing_error = str(e)

    webhook_event.processed = True
    webhook_event.save(update_fields=['processed', 'processing_error'])
    return webhook_event


@csrf_exempt
@require_http_methods(['POST'])
def stripe_webhook(request):
    """
    Webhook endpoint for Stripe.

    POST /api/payments/webhook/
    """
    signature = request.headers.get('Stripe-Signature')
    if not signature:
        return JsonResponse({'error': 'Missing stripe-signature header'}, status=400)

    try:
        event = StripeService.construct_event(request.body, signature)
    except StripeError as e:
        logger.warning(f"[PAYMENTS] Webhook signature verification failed: {e}")
        return JsonResponse({'error': f'Webhook signature verification failed: {e}'}, status=400)

    event_id = event.get('id')
    event_type = event.get('type', '')
    if not event_id:
        return JsonResponse({'error': 'Event id is required'}, status=400)

    try:
        webhook_event, created = PaymentWebhookEvent.objects.get_or_create(
            stripe_event_id=event_id,
            defaults={'stripe_event_type': event_type, 'event_data': event}
        )
    except Exception as e:
        logger.exception(f"[PAYMENTS] Error saving webhook event {event_id}: {e}")
        return JsonResponse({'error': 'Error saving webhook event'}, status=500)

    if not created and webhook_event.processed:
        logger.info(f"[PAYMENTS] Duplicate webhook event {event_id} ignored")
        return JsonResponse({'received': True})

    process_event(webhook_event)
    return JsonResponse({'received': True})
