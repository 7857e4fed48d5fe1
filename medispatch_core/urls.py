"""
MediSpatch Main URL Configuration
"""

from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.health import health_check, readiness_check, detailed_health
from notifications.views import SlackSendView


# ===========================================
# ADMIN SITE CUSTOMIZATION
# ===========================================
admin.site.site_header = "MediSpatch Dispatch Console"
admin.site.site_title = "MediSpatch Admin"
admin.site.index_title = "Delivery Operations"


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request):
    """API Root endpoint with available routes."""
    return Response({
        'name': 'MediSpatch API',
        'version': '1.0.0',
        'endpoints': {
            'auth': {
                'token': '/api/auth/token/',
                'refresh': '/api/auth/token/refresh/',
                'two_factor_setup': '/api/auth/2fa/setup/',
            },
            'users': '/api/users/',
            'delivery_requests': '/api/delivery-requests/',
            'drivers': '/api/drivers/',
            'tracking': '/api/track/<tracking_id>/',
            'slack': '/api/slack/send',
            'payments': {
                'create_intent': '/api/payments/create-intent/',
                'webhook': '/api/payments/webhook/',
            },
            'docs': '/api/docs/',
        }
    })


urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # Health probes
    path('health', health_check, name='health'),
    path('health/', health_check),
    path('health/ready/', readiness_check, name='health-ready'),
    path('health/detailed/', detailed_health, name='health-detailed'),

    # API Root
    path('api/', api_root, name='api-root'),

    # OpenAPI schema & docs
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),

    # App URLs
    path('api/', include('core.urls')),
    path('api/', include('logistics.urls')),
    path('api/', include('notifications.urls')),
    path('api/', include('payments.urls')),

    # Slack proxy without the /api prefix
    path('slack/send', SlackSendView.as_view(), name='slack-send-root'),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
