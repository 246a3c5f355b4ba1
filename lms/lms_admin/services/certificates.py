"""
Certificate status transitions for externally completed training.

Only the metadata moves here; the file itself lives in external storage.
"""
import logging

from django.db import transaction
from django.utils import timezone

from lms.exceptions import AuthorizationError, ValidationError
from lms_admin.models import Assignment
from lms_admin.permissions import require_privileged, same_organization
from lms_admin.services.assignment_lifecycle import get_assignment, complete_assignment

logger = logging.getLogger(__name__)

VERIFIED_CERTIFICATE_SCORE = 100

UPLOADABLE_STATES = (None, 'not_required', 'rejected')


def upload_certificate(assignment_id, actor, notes=None):
    """Learner marks a certificate as uploaded for their own assignment"""
    assignment = get_assignment(assignment_id)
    if assignment.assigned_to_id != actor.id:
        raise AuthorizationError('You can only upload certificates for your own assignments.')
    if assignment.is_completed:
        raise ValidationError('This assignment is already completed.')
    if assignment.certificate_status not in UPLOADABLE_STATES:
        raise ValidationError(f'Certificate is already {assignment.certificate_status}.')

    now = timezone.now()
    assignment.certificate_status = 'uploaded'
    assignment.certificate_uploaded_at = now
    if notes:
        assignment.verification_notes = notes.strip() or None
    assignment.save(update_fields=['certificate_status', 'certificate_uploaded_at', 'verification_notes', 'updated_at'])

    logger.info('Certificate uploaded for assignment %s by %s', assignment.id, actor.id)
    return assignment


def review_certificate(assignment_id, actor, approve, notes=None):
    """
    uploaded -> verified | rejected.

    A verified certificate completes the assignment with full marks.
    """
    require_privileged(actor, 'review certificates')
    assignment = get_assignment(assignment_id)
    if not same_organization(actor, assignment.organization_id):
        raise AuthorizationError('This assignment belongs to another organization.')
    if assignment.certificate_status != 'uploaded':
        raise ValidationError(
            f'Only uploaded certificates can be reviewed (current: {assignment.certificate_status}).'
        )

    new_status = 'verified' if approve else 'rejected'
    now = timezone.now()
    with transaction.atomic():
        # re-check under the write so two reviewers cannot both win
        updated = Assignment.objects.filter(id=assignment.id, certificate_status='uploaded').update(
            certificate_status=new_status,
            verified_by=actor,
            verified_at=now,
            verification_notes=(notes or '').strip() or None,
            updated_at=now,
        )
        if not updated:
            raise ValidationError('This certificate has already been reviewed.')
        # course assignments still wait for their modules
        if approve and assignment.assignment_type != 'course':
            complete_assignment(assignment.id, VERIFIED_CERTIFICATE_SCORE)

    logger.info('Certificate for assignment %s %s by %s', assignment.id, new_status, actor.id)
    return get_assignment(assignment.id)
