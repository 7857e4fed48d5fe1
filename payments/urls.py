"""
Payments App URLs
"""

from django.urls import path

from . import payment_api

urlpatterns = [
    # Card payments (Stripe)
    path('payments/create-intent/', payment_api.create_payment_intent, name='payment-create-intent'),
    path('payments/webhook/', payment_api.stripe_webhook, name='payment-webhook'),
]
