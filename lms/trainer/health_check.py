"""
Health Check Views

- /api/health/        database connectivity
- /api/health/ready/  database plus every model table present
- /api/health/live/   process is serving requests
"""

import logging

from django.apps import apps
from django.db import DatabaseError, connection
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class HealthCheckService:
    """Checks on the persistence store the engine depends on."""

    @staticmethod
    def check_database():
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
        except DatabaseError as e:
            logger.error("Database health check failed: %s", e)
            return {'status': 'unhealthy', 'database': 'disconnected', 'error': str(e)}
        return {'status': 'healthy', 'database': 'connected'}

    @staticmethod
    def check_tables():
        """
        Verify that the table of every installed model exists.

        Returns:
            dict: status plus the list of missing tables
        """
        required = {model._meta.db_table for model in apps.get_models()}
        try:
            existing = set(connection.introspection.table_names())
        except DatabaseError as e:
            logger.error("Table health check failed: %s", e)
            return {'status': 'unhealthy', 'error': str(e)}

        missing = sorted(required - existing)
        return {
            'status': 'healthy' if not missing else 'degraded',
            'total_required': len(required),
            'missing': missing,
        }

    @staticmethod
    def get_system_status():
        checks = {
            'database': HealthCheckService.check_database(),
            'tables': HealthCheckService.check_tables(),
        }
        statuses = [check['status'] for check in checks.values()]

        # overall status is the worst of the checks
        if 'unhealthy' in statuses:
            overall = 'unhealthy'
        elif 'degraded' in statuses:
            overall = 'degraded'
        else:
            overall = 'healthy'

        return {
            'status': overall,
            'timestamp': timezone.now().isoformat(),
            'checks': checks,
        }


# Health Check Endpoints

@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def health_check(request):
    health = HealthCheckService.check_database()
    code = status.HTTP_200_OK if health['status'] == 'healthy' else status.HTTP_503_SERVICE_UNAVAILABLE
    return Response(health, status=code)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def readiness_check(request):
    """
    Kubernetes-style readiness check.

    Returns:
        Response: 200 if the database is up and all tables exist, 503 otherwise
    """
    system_status = HealthCheckService.get_system_status()
    is_ready = (
        system_status['checks']['database']['status'] == 'healthy' and
        system_status['checks']['tables'].get('missing', []) == [] and
        system_status['checks']['tables']['status'] != 'unhealthy'
    )

    if is_ready:
        return Response({'ready': True, 'message': 'System is ready'}, status=status.HTTP_200_OK)
    return Response(
        {'ready': False, 'message': 'System is not ready', 'status': system_status},
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def liveness_check(request):
    return Response({'alive': True, 'message': 'Service is running'}, status=status.HTTP_200_OK)
