"""
Logistics App URLs
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    DeliveryRequestViewSet, DriverViewSet,
    PublicTrackingView, request_stub,
)

router = DefaultRouter()
router.register(r'delivery-requests', DeliveryRequestViewSet, basename='delivery-request')
router.register(r'drivers', DriverViewSet, basename='driver')

urlpatterns = [
    # Public tracking lookup
    path('track/<str:tracking_id>/', PublicTrackingView.as_view(), name='public-tracking'),

    # Inbound request acknowledgement
    path('requests', request_stub, name='request-stub'),

    # Router URLs
    path('', include(router.urls)),
]
