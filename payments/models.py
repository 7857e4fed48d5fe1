"""
PAYMENTS App - Card Payments for MediSpatch

Records Stripe payment intents and the raw webhook events that report
their outcome.
"""

import uuid
from django.db import models


class PaymentStatus(models.TextChoices):
    """Payment status enumeration (subset of Stripe's intent statuses)."""
    SUCCEEDED = 'succeeded', 'Succeeded'
    FAILED = 'failed', 'Failed'
    PROCESSING = 'processing', 'Processing'
    REQUIRES_PAYMENT_METHOD = 'requires_payment_method', 'Requires payment method'
    CANCELED = 'canceled', 'Canceled'


class Payment(models.Model):
    """
    Outcome of one Stripe payment intent.

    Amount is in the smallest currency unit (cents), as Stripe reports it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        verbose_name="Payment intent"
    )
    delivery = models.ForeignKey(
        'logistics.DeliveryRequest',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments',
        verbose_name="Delivery request"
    )

    amount = models.PositiveIntegerField(verbose_name="Amount (cents)")
    currency = models.CharField(max_length=10, default='usd')
    status = models.CharField(
        max_length=30,
        choices=PaymentStatus.choices,
        verbose_name="Status"
    )
    payment_method = models.CharField(max_length=50, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['delivery', 'status'], name='payment_delivery_status_idx'),
        ]

    def __str__(self):
        return f"{self.payment_intent_id} | {self.formatted_amount} | {self.status}"

    @property
    def formatted_amount(self) -> str:
        return f"{self.amount / 100:.2f} {self.currency.upper()}"


class PaymentWebhookEvent(models.Model):
    """
    Raw Stripe webhook event, stored before processing.

    processed is set once handling finished; processing_error keeps the
    message of a failed handler.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    stripe_event_id = models.CharField(max_length=255, unique=True)
    stripe_event_type = models.CharField(max_length=100)
    event_data = models.JSONField()
    processed = models.BooleanField(default=False)
    processing_error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Webhook event"
        verbose_name_plural = "Webhook events"
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.stripe_event_type} ({self.stripe_event_id})"
