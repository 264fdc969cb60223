"""
URL configuration for the tuition-center back office
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from django.views.generic import RedirectView
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
    SpectacularRedocView,
)


@require_http_methods(["GET"])
def health_view(request):
    """Minimal health check for connectivity verification. No auth required."""
    return JsonResponse({'ok': True, 'status': 'ok', 'service': 'tuition-back'})


@require_http_methods(["GET"])
def api_root(request):
    """Root endpoint - API information"""
    return JsonResponse({
        'name': 'Tuition Center API',
        'version': '1.0.0',
        'endpoints': {
            'health': '/api/health/',
            'admin': '/api/admin/',
            'teacher': '/api/teacher/',
            'exports': '/api/exports/',
            'cron': '/api/cron/',
            'docs': '/api/docs/',
            'schema': '/api/schema/',
        }
    })


urlpatterns = [
    path('', api_root, name='api-root'),
    path('admin', RedirectView.as_view(url='/admin/', permanent=False)),
    path('admin/', admin.site.urls),
    path('api', RedirectView.as_view(url='/api/', permanent=False)),
    path('api/', api_root),
    path('api/health/', health_view, name='api-health'),

    # API Schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),

    # Admin API
    path('api/admin/', include('accounts.urls')),
    path('api/admin/', include('core.urls')),
    path('api/admin/', include('students.urls.admin')),
    path('api/admin/', include('academics.urls.admin')),
    path('api/admin/', include('packages.urls.admin')),
    path('api/admin/', include('scheduling.urls.admin')),
    path('api/admin/', include('attendance.urls.admin')),
    path('api/admin/', include('payroll.urls.admin')),
    path('api/admin/', include('partners.urls.admin')),

    # Teacher self-service
    path('api/teacher/', include('scheduling.urls.teacher')),
    path('api/teacher/', include('attendance.urls.teacher')),
    path('api/teacher/', include('payroll.urls.teacher')),

    # Downloads, scheduled jobs, shared pickers
    path('api/exports/', include('packages.urls.exports')),
    path('api/exports/', include('partners.urls.exports')),
    path('api/cron/', include('scheduling.urls.cron')),
    path('api/', include('academics.urls.public')),
]
