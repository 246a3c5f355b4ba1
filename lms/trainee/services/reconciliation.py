"""
Reconciliation (healing) of module progress from committed quiz attempts.

A learner can pass a module quiz while the matching progress write is
lost. Healing derives the missing completions from attempt history and,
once every module of the course is completed, completes the learner's
course assignment.

Standalone quiz assignments heal the same way: an open quiz assignment whose
quiz the learner has already passed is completed from the attempt history.

plan_reconciliation() is pure: it sees plain records and returns the
upserts to perform. reconcile() loads the records, applies the plan one
module at a time and reports what happened. Running it again right after
performs no writes.
"""
from dataclasses import dataclass, field
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.utils import timezone

from lms.exceptions import NotFound
from lms_admin.models import Assignment
from lms_admin.services.assignment_lifecycle import apply_quiz_result, complete_course_assignments
from trainee.models import ModuleProgress, QuizAttempt
from trainee.services.module_progress import mark_module_completed
from trainee.services.score_overrides import effective_passed, effective_total
from trainee.utils.numbers import round_half_up
from trainer.models import Course, Module

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptRecord:
    module_id: object
    attempt_id: object
    passed: bool


@dataclass(frozen=True)
class ProgressUpsert:
    module_id: object
    started_at: object
    completed_at: object
    status: str = ModuleProgress.STATUS_COMPLETED
    progress_percentage: int = 100


@dataclass(frozen=True)
class ReconciliationPlan:
    upserts: tuple = ()
    course_complete: bool = False


@dataclass
class ReconciliationResult:
    healed: int = 0
    failed: int = 0
    failed_module_ids: list = field(default_factory=list)
    assignment_completed: bool = False
    course_complete: bool = False

    def as_dict(self):
        return {
            'healed': self.healed,
            'failed': self.failed,
            'failed_module_ids': [str(m) for m in self.failed_module_ids],
            'assignment_completed': self.assignment_completed,
            'course_complete': self.course_complete,
        }


def plan_reconciliation(modules, progress_records, attempt_records, now):
    """
    modules: the course's modules (anything with .id), in order
    progress_records: existing progress rows (.module_id, .status, .started_at)
    attempt_records: committed attempts as AttemptRecord, passed = effective pass

    A module gets an upsert when some attempt for its quiz passed and it has
    no completed progress row. The course is complete when every module is
    completed once the upserts are applied.
    """
    module_ids = [m.id for m in modules]
    progress_by_module = {p.module_id: p for p in progress_records}
    passed_modules = {a.module_id for a in attempt_records if a.passed}

    upserts = []
    for module_id in module_ids:
        if module_id not in passed_modules:
            continue
        progress = progress_by_module.get(module_id)
        if progress is not None and progress.status == ModuleProgress.STATUS_COMPLETED:
            continue
        started_at = progress.started_at if progress is not None and progress.started_at else now
        upserts.append(ProgressUpsert(module_id=module_id, started_at=started_at, completed_at=now))

    completed = {
        module_id for module_id, p in progress_by_module.items()
        if p.status == ModuleProgress.STATUS_COMPLETED
    }
    completed.update(u.module_id for u in upserts)
    course_complete = bool(module_ids) and all(m in completed for m in module_ids)
    return ReconciliationPlan(upserts=tuple(upserts), course_complete=course_complete)


def load_attempt_records(user, course_id):
    attempts = (
        QuizAttempt.objects
        .filter(user=user, quiz__module__course_id=course_id, completed_at__isnull=False)
        .select_related('quiz')
        .prefetch_related('overrides')
    )
    return [
        AttemptRecord(module_id=a.quiz.module_id, attempt_id=a.id, passed=effective_passed(a))
        for a in attempts
    ]


def reconcile(user, course_id):
    """
    Heal one learner's progress in one course.

    A failed write on one module is logged and counted; the remaining
    modules still heal and the next run retries the failed one.
    """
    try:
        exists = Course.objects.filter(id=course_id).exists()
    except (ValueError, DjangoValidationError):
        exists = False
    if not exists:
        raise NotFound(f'Course not found: {course_id}')

    modules = {m.id: m for m in Module.objects.filter(course_id=course_id).order_by('sequence_order')}
    progress = list(ModuleProgress.objects.filter(user=user, course_id=course_id))
    plan = plan_reconciliation(modules.values(), progress, load_attempt_records(user, course_id), timezone.now())

    result = ReconciliationResult(course_complete=plan.course_complete)
    for upsert in plan.upserts:
        try:
            _, transitioned = mark_module_completed(
                user, modules[upsert.module_id], source='reconciliation', now=upsert.completed_at,
            )
        except DatabaseError:
            logger.exception('Failed to heal module %s for user %s', upsert.module_id, user.id)
            result.failed_module_ids.append(upsert.module_id)
            continue
        if transitioned:
            result.healed += 1
    result.failed = len(result.failed_module_ids)

    if plan.course_complete and not result.failed:
        try:
            result.assignment_completed = complete_course_assignments(user, course_id) > 0
        except DatabaseError:
            logger.exception('Failed to complete course assignment %s for user %s', course_id, user.id)

    if result.healed or result.failed or result.assignment_completed:
        logger.info(
            'Reconciled course %s for user %s: healed=%d failed=%d assignment_completed=%s',
            course_id, user.id, result.healed, result.failed, result.assignment_completed,
        )
    return result


@dataclass
class QuizAssignmentResult:
    completed: int = 0
    failed: int = 0
    failed_quiz_ids: list = field(default_factory=list)

    def as_dict(self):
        return {
            'completed': self.completed,
            'failed': self.failed,
            'failed_quiz_ids': [str(q) for q in self.failed_quiz_ids],
        }


def attempt_percentage(attempt):
    if not attempt.max_score:
        return 0
    return round_half_up(effective_total(attempt) / attempt.max_score * 100)


def quiz_outcome(attempts):
    """
    (percentage, passed) a quiz assignment should carry given the learner's
    attempts in attempt_number order: the best effectively passing attempt,
    otherwise the latest one.
    """
    passing = [a for a in attempts if effective_passed(a)]
    if passing:
        return max(attempt_percentage(a) for a in passing), True
    return attempt_percentage(attempts[-1]), False


def reconcile_quiz_assignments(user, quiz_id=None):
    """
    Bring the learner's open standalone quiz assignments in line with their
    committed attempts (overrides applied). Limited to one quiz when
    ``quiz_id`` is given. A failed write is logged and counted per quiz.
    """
    open_assignments = Assignment.objects.filter(
        assigned_to=user, assignment_type='quiz',
    ).exclude(status=Assignment.STATUS_COMPLETED)
    if quiz_id is not None:
        open_assignments = open_assignments.filter(content_id=quiz_id)
    quiz_ids = set(open_assignments.values_list('content_id', flat=True))

    result = QuizAssignmentResult()
    if not quiz_ids:
        return result

    attempts_by_quiz = {}
    attempts = (
        QuizAttempt.objects
        .filter(user=user, quiz_id__in=quiz_ids, quiz__module__isnull=True, completed_at__isnull=False)
        .select_related('quiz')
        .prefetch_related('overrides')
        .order_by('attempt_number')
    )
    for attempt in attempts:
        attempts_by_quiz.setdefault(attempt.quiz_id, []).append(attempt)

    for attempted_quiz_id, quiz_attempts in attempts_by_quiz.items():
        score_percentage, passed = quiz_outcome(quiz_attempts)
        try:
            result.completed += apply_quiz_result(user, attempted_quiz_id, score_percentage, passed)
        except DatabaseError:
            logger.exception('Failed to sync quiz assignment %s for user %s', attempted_quiz_id, user.id)
            result.failed_quiz_ids.append(attempted_quiz_id)
    result.failed = len(result.failed_quiz_ids)

    if result.completed or result.failed:
        logger.info(
            'Reconciled quiz assignments for user %s: completed=%d failed=%d',
            user.id, result.completed, result.failed,
        )
    return result
