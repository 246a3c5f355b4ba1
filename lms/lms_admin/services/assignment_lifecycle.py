"""
Assignment Lifecycle Manager

Owns the pending -> in_progress -> completed state of an assignment.
Every transition is a conditional UPDATE so repeated triggers (a quiz pass
followed by a healing pass, reconcile run twice, a retried request)
converge on one state and one completion timestamp.
"""
import logging
import uuid

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models, transaction
from django.db.models import Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from lms.exceptions import AuthorizationError, NotFound, ValidationError
from lms_admin.models import Assignment, Profile
from lms_admin.permissions import (
    require_privileged, same_organization, is_privileged,
)

logger = logging.getLogger(__name__)

COURSE_COMPLETION_SCORE = 100


def get_assignment(assignment_id):
    try:
        return Assignment.objects.select_related('assigned_to').get(id=assignment_id)
    except (Assignment.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFound(f'Assignment not found: {assignment_id}')


def _now_if_null(field, now):
    return Coalesce(field, Value(now, output_field=models.DateTimeField()))


def start_assignment(assignment_id):
    """
    pending -> in_progress.

    Already started or completed assignments are left untouched.
    Returns True when this call performed the transition.
    """
    assignment = get_assignment(assignment_id)
    now = timezone.now()
    updated = Assignment.objects.filter(
        id=assignment.id, status=Assignment.STATUS_PENDING,
    ).update(status=Assignment.STATUS_IN_PROGRESS, started_at=now, updated_at=now)

    if updated:
        logger.info('Assignment %s started for user %s', assignment.id, assignment.assigned_to_id)
    return bool(updated)


def complete_assignment(assignment_id, score=None, course_progress_verified=False):
    """
    Any non-completed state -> completed.

    The status guard lives in the UPDATE's WHERE clause, so concurrent or
    repeated callers produce exactly one completion. ``started_at`` is
    backfilled for assignments that skipped the in_progress state.

    Course assignments complete only once every module of the course is
    completed, so they are refused unless the caller has verified that
    (see complete_course_assignments).
    """
    assignment = get_assignment(assignment_id)
    if assignment.assignment_type == 'course' and not course_progress_verified:
        raise ValidationError(
            'Course assignments complete automatically once every module is completed.'
        )
    if score is not None and not 0 <= score <= 100:
        raise ValidationError('Completion score must be between 0 and 100.')

    now = timezone.now()
    fields = {
        'status': Assignment.STATUS_COMPLETED,
        'completed_at': now,
        'started_at': _now_if_null('started_at', now),
        'updated_at': now,
    }
    if score is not None:
        fields['completion_score'] = score

    updated = Assignment.objects.filter(id=assignment.id).exclude(
        status=Assignment.STATUS_COMPLETED,
    ).update(**fields)

    if updated:
        logger.info(
            'Assignment %s completed for user %s (score=%s)',
            assignment.id, assignment.assigned_to_id, score,
        )
    else:
        logger.debug('Assignment %s already completed', assignment.id)
    return bool(updated)


def record_score(assignment_id, score):
    """Store the latest result on an assignment that is still open"""
    updated = Assignment.objects.filter(id=assignment_id).exclude(
        status=Assignment.STATUS_COMPLETED,
    ).exclude(completion_score=score).update(completion_score=score, updated_at=timezone.now())
    return bool(updated)


def open_assignments_for(user, assignment_type, content_id):
    return Assignment.objects.filter(
        assigned_to=user,
        assignment_type=assignment_type,
        content_id=content_id,
    ).exclude(status=Assignment.STATUS_COMPLETED)


def complete_course_assignments(user, course_id):
    """
    Complete every open course assignment of ``user`` for ``course_id``.
    Only the reconciliation process calls this, after it has seen every
    module of the course completed.
    Returns the number of assignments this call completed.
    """
    completed = 0
    for assignment_id in open_assignments_for(user, 'course', course_id).values_list('id', flat=True):
        if complete_assignment(assignment_id, COURSE_COMPLETION_SCORE, course_progress_verified=True):
            completed += 1
    return completed


def apply_quiz_result(user, quiz_id, score_percentage, passed):
    """
    Feed a standalone quiz result into the learner's quiz assignment(s).

    The score is recorded on every result; only a pass completes.
    """
    transitioned = 0
    for assignment_id in open_assignments_for(user, 'quiz', quiz_id).values_list('id', flat=True):
        start_assignment(assignment_id)
        if passed:
            if complete_assignment(assignment_id, score_percentage):
                transitioned += 1
        else:
            record_score(assignment_id, score_percentage)
    return transitioned


def create_assignments(actor, assignment_type, content_id, user_ids, content_title='',
                       due_date=None, priority='medium', certificate_required=False):
    """
    Assign content to several learners at once.

    Learners already holding an open assignment for the same content are
    skipped rather than given a duplicate.
    """
    require_privileged(actor, 'assign training')
    if assignment_type not in dict(Assignment.TYPE_CHOICES):
        raise ValidationError(f'Unknown assignment type: {assignment_type}')

    try:
        user_ids = list(dict.fromkeys(str(uuid.UUID(str(uid))) for uid in user_ids))
    except ValueError:
        raise ValidationError('user_ids must be UUIDs.')
    if not user_ids:
        raise ValidationError('Select at least one user.')
    learners = {str(p.id): p for p in Profile.objects.filter(id__in=user_ids)}
    missing = [uid for uid in user_ids if uid not in learners]
    if missing:
        raise NotFound(f'Users not found: {", ".join(missing)}')

    for learner in learners.values():
        if not same_organization(actor, learner.organization_id):
            raise NotFound(f'Users not found: {learner.id}')

    already_assigned = {
        str(uid) for uid in Assignment.objects.filter(
            assignment_type=assignment_type,
            content_id=content_id,
            assigned_to_id__in=user_ids,
        ).exclude(status=Assignment.STATUS_COMPLETED).values_list('assigned_to_id', flat=True)
    }

    to_create = [
        Assignment(
            assignment_type=assignment_type,
            assigned_to=learners[uid],
            assigned_by=actor,
            organization_id=learners[uid].organization_id or actor.organization_id,
            content_id=content_id,
            content_title=content_title,
            priority=priority,
            due_date=due_date,
            certificate_status=None if certificate_required else 'not_required',
        )
        for uid in user_ids if uid not in already_assigned
    ]
    with transaction.atomic():
        Assignment.objects.bulk_create(to_create)

    logger.info(
        'Created %d %s assignment(s) for content %s, skipped %d',
        len(to_create), assignment_type, content_id, len(already_assigned),
    )
    return {
        'created': [str(a.id) for a in to_create],
        'skipped': sorted(already_assigned),
    }


def list_assignments(actor, user_id=None, status=None):
    """Learners see their own assignments; privileged actors their organization's"""
    qs = Assignment.objects.select_related('assigned_to')
    if is_privileged(actor):
        if actor.organization_id is not None:
            qs = qs.filter(organization_id=actor.organization_id)
        if user_id:
            qs = qs.filter(assigned_to_id=user_id)
    else:
        if user_id and str(user_id) != str(actor.id):
            raise AuthorizationError('You can only access your own training records.')
        qs = qs.filter(assigned_to=actor)

    if status:
        if status not in dict(Assignment.STATUS_CHOICES):
            raise ValidationError(f'Unknown status: {status}')
        qs = qs.filter(status=status)
    return qs
