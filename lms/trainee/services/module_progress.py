"""
Module Progress Tracker

Per (user, course, module) state: not_started -> in_progress -> completed.
Completed is terminal. Video percentages are a high-water mark, so late or
out-of-order reports never move a learner backwards.
"""
import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from lms.exceptions import NotFound, ValidationError
from trainee.models import ModuleProgress
from trainee.utils.numbers import round_half_up, to_decimal
from trainer.models import Module
from trainer.views import get_course

logger = logging.getLogger(__name__)

_STATUS_RANK = {
    ModuleProgress.STATUS_NOT_STARTED: 0,
    ModuleProgress.STATUS_IN_PROGRESS: 1,
    ModuleProgress.STATUS_COMPLETED: 2,
}


def video_threshold():
    return settings.VIDEO_COMPLETION_THRESHOLD


def get_module(module_id):
    try:
        return Module.objects.select_related('course').get(id=module_id)
    except (Module.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFound(f'Module not found: {module_id}')


def clamp_percentage(value):
    """Round to a whole percentage, then clamp to [0, 100]"""
    try:
        pct = round_half_up(to_decimal(value))
    except ValueError:
        raise ValidationError('Progress percentage must be a number.')
    return max(0, min(100, pct))


def status_for_video(percentage):
    if percentage >= video_threshold():
        return ModuleProgress.STATUS_COMPLETED
    if percentage > 0:
        return ModuleProgress.STATUS_IN_PROGRESS
    return ModuleProgress.STATUS_NOT_STARTED


def _advance(current, target):
    return target if _STATUS_RANK[target] > _STATUS_RANK[current] else current


def get_progress(user, module):
    return ModuleProgress.objects.filter(user=user, course_id=module.course_id, module=module).first()


def _locked_progress(user, module, now):
    progress, _ = ModuleProgress.objects.select_for_update().get_or_create(
        user=user,
        course_id=module.course_id,
        module=module,
        defaults={'last_accessed_at': now},
    )
    return progress


def update_video_progress(user, module_id, percentage):
    """
    Record a video-watch report and derive the module status from it.

    Crossing the completion threshold sets video_completed_at and
    completed_at once; after that a report only refreshes last_accessed_at.
    Below the threshold a lower report never lowers the stored percentage.
    """
    module = get_module(module_id)
    pct = clamp_percentage(percentage)
    now = timezone.now()

    with transaction.atomic():
        progress = _locked_progress(user, module, now)
        was_completed = progress.is_completed
        progress.last_accessed_at = now
        if progress.video_completed_at is not None:
            progress.save(update_fields=['last_accessed_at'])
            return progress

        watched = max(pct, progress.video_progress_percentage)
        progress.video_progress_percentage = watched
        if module.duration_minutes:
            progress.video_watch_time_seconds = round_half_up(watched / 100 * module.duration_minutes * 60)
        if watched > 0 and progress.started_at is None:
            progress.started_at = now
        if watched >= video_threshold() and progress.video_completed_at is None:
            progress.video_completed_at = now

        if not was_completed:
            progress.progress_percentage = max(progress.progress_percentage, watched)
            progress.status = _advance(progress.status, status_for_video(watched))
            if progress.is_completed:
                progress.progress_percentage = 100
                progress.completed_at = now
                progress.completion_source = 'video'

        progress.save()

    if progress.is_completed and not was_completed:
        logger.info('Module %s completed by video for user %s', module.id, user.id)
    return progress


def can_start_quiz(module, progress):
    """Modules without video are always open; video modules need the watch threshold"""
    if not module.requires_video:
        return True
    return progress is not None and progress.video_progress_percentage >= video_threshold()


def quiz_access(user, module_id):
    module = get_module(module_id)
    progress = get_progress(user, module)
    allowed = can_start_quiz(module, progress)
    return {
        'module_id': str(module.id),
        'can_start_quiz': allowed,
        'requires_video': module.requires_video,
        'video_progress_percentage': progress.video_progress_percentage if progress else 0,
        'required_percentage': video_threshold(),
        'message': None if allowed else 'Complete the video before taking the quiz.',
    }


def mark_module_completed(user, module, source='quiz', now=None):
    """
    Mark a module completed, keeping an existing started_at.
    Returns (progress, transitioned); an already completed module is left as is.
    """
    now = now or timezone.now()
    with transaction.atomic():
        progress = _locked_progress(user, module, now)
        if progress.is_completed:
            return progress, False
        progress.status = ModuleProgress.STATUS_COMPLETED
        progress.progress_percentage = 100
        progress.started_at = progress.started_at or now
        progress.completed_at = now
        progress.last_accessed_at = now
        progress.completion_source = source
        progress.save()

    logger.info('Module %s completed by %s for user %s', module.id, source, user.id)
    return progress, True


def course_progress(user, course_id):
    """
    Per-module status for a course plus the overall percentage and the
    first incomplete module in sequence order.
    """
    course = get_course(course_id, user)
    modules = list(course.modules.all())
    progress_by_module = {
        p.module_id: p for p in ModuleProgress.objects.filter(user=user, course=course)
    }

    items = []
    completed = 0
    current_module_id = None
    for module in modules:
        progress = progress_by_module.get(module.id)
        status = progress.status if progress else ModuleProgress.STATUS_NOT_STARTED
        if status == ModuleProgress.STATUS_COMPLETED:
            completed += 1
        elif current_module_id is None:
            current_module_id = str(module.id)
        items.append({
            'module_id': str(module.id),
            'title': module.title,
            'sequence_order': module.sequence_order,
            'content_type': module.content_type,
            'status': status,
            'progress_percentage': progress.progress_percentage if progress else 0,
            'video_progress_percentage': progress.video_progress_percentage if progress else 0,
            'completed_at': progress.completed_at if progress else None,
            'can_start_quiz': can_start_quiz(module, progress),
        })

    total = len(modules)
    return {
        'course_id': str(course.id),
        'course_title': course.title,
        'modules': items,
        'completed_modules': completed,
        'total_modules': total,
        'overall_percentage': round_half_up(completed / total * 100) if total else 0,
        'current_module_id': current_module_id,
        'course_completed': total > 0 and completed == total,
    }
