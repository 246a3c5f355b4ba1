"""
Bulk administrative operations.

Each item runs on its own; one failing item never rolls back the others.
The caller gets a settled summary instead of an all-or-nothing result.
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from rest_framework.exceptions import APIException

from lms.exceptions import NotFound
from lms_admin.models import Assignment
from lms_admin.permissions import require_privileged

logger = logging.getLogger(__name__)


def settle(items, operation):
    """
    Run ``operation(item)`` for every item and collect the outcome.

    Returns {successful, failed, results: [{id, status, error}]} where
    status is 'fulfilled' or 'rejected'. An error raised for one item
    rejects that item only.
    """
    results = []
    for item in items:
        try:
            with transaction.atomic():
                operation(item)
        except (APIException, DatabaseError, DjangoValidationError) as e:
            logger.warning('Bulk item %s failed: %s', item, e)
            results.append({'id': str(item), 'status': 'rejected', 'error': str(e)})
        else:
            results.append({'id': str(item), 'status': 'fulfilled', 'error': None})

    successful = sum(1 for r in results if r['status'] == 'fulfilled')
    return {
        'successful': successful,
        'failed': len(results) - successful,
        'results': results,
    }


def delete_assignment(assignment_id, actor):
    qs = Assignment.objects.all()
    if actor.organization_id is not None:
        qs = qs.filter(organization_id=actor.organization_id)
    try:
        deleted, _ = qs.filter(id=assignment_id).delete()
    except (ValueError, DjangoValidationError):
        deleted = 0
    if not deleted:
        raise NotFound(f'Assignment not found: {assignment_id}')


def bulk_delete_assignments(assignment_ids, actor):
    require_privileged(actor, 'delete assignments')
    summary = settle(assignment_ids, lambda assignment_id: delete_assignment(assignment_id, actor))
    logger.info(
        'Bulk delete by %s: %d succeeded, %d failed',
        actor.id, summary['successful'], summary['failed'],
    )
    return summary
