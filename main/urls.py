"""
URL configuration for the pickup API.
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView


# Simple health check view - no database required
def health_check(request):
    """Health check endpoint for container orchestration.
    Returns 200 OK without database queries for fast response.
    """
    return JsonResponse({
        'status': 'healthy',
        'service': 'pickup-api'
    })


urlpatterns = [
    path('api/health/', health_check, name='health-check'),

    path('admin/', admin.site.urls),

    # OAuth2
    path('o/', include('oauth2_provider.urls', namespace='oauth2_provider')),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),

    # API endpoints
    path('api/auth/', include('users.urls')),
    path('api/pickup/', include('pickup.urls')),
    path('api/notifications/', include('notifications.urls')),
    path('api/', include('stores.urls')),
]
