"""
URL configuration for the lms project.

- /admin/          Django admin site (content authoring, reference data)
- /api/health/     health checks
- /api/trainer/    course reference data
- /api/trainee/    quiz scoring, overrides, module progress, reconciliation
- /api/admin/      assignment lifecycle, certificates, bulk operations
"""
from django.contrib import admin
from django.urls import path, include

from trainer.health_check import health_check, readiness_check, liveness_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/health/', health_check, name='health-check'),
    path('api/health/ready/', readiness_check, name='readiness-check'),
    path('api/health/live/', liveness_check, name='liveness-check'),
    path('api/trainer/', include('trainer.urls')),
    path('api/trainee/', include('trainee.urls')),
    path('api/admin/', include('lms_admin.urls')),
]
