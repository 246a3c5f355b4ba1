"""
Override Layer

Administrators replace the automatic score of single questions within an
attempt. The effective score is always derived on read from the answer
snapshot stored with the attempt plus the active overrides; it is never
written back to the attempt.
"""
from decimal import Decimal
import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from rest_framework.exceptions import APIException

from lms.exceptions import NotFound, ValidationError
from lms_admin.permissions import require_learner_access, require_privileged, same_organization
from trainee.models import QuizAttempt, ScoreOverride
from trainer.models import Question
from trainee.services.answer_evaluator import evaluate
from trainee.utils.numbers import as_number, percentage, to_decimal

logger = logging.getLogger(__name__)


def passes(score, max_score, passing_score):
    """score / max_score * 100 >= passing_score, without float rounding; never passes an empty quiz"""
    if not max_score or max_score <= 0:
        return False
    return Decimal(score) * 100 >= Decimal(passing_score) * Decimal(max_score)


def get_attempt(attempt_id):
    try:
        return QuizAttempt.objects.select_related('quiz', 'user').get(id=attempt_id)
    except (QuizAttempt.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFound(f'Quiz attempt not found: {attempt_id}')


def _active_overrides(attempt):
    return {str(o.question_id): o for o in attempt.overrides.all()}


def effective_total(attempt, overrides=None):
    """Sum of per-question scores, override score replacing the automatic one where present"""
    if overrides is None:
        overrides = _active_overrides(attempt)
    total = Decimal(0)
    for record in attempt.answers:
        override = overrides.get(str(record['question_id']))
        total += override.override_score if override else Decimal(record.get('points_awarded', 0))
    return total


def effective_passed(attempt, overrides=None):
    return passes(effective_total(attempt, overrides), attempt.max_score, attempt.quiz.passing_score)


def effective_score(attempt):
    """
    Per-question and aggregate view of an attempt with overrides applied.

    With no overrides effective_score equals the automatic score; otherwise
    it differs by the sum of (override - original) over overridden questions.
    """
    overrides = _active_overrides(attempt)
    questions = []
    auto_total = Decimal(0)
    effective = Decimal(0)

    for record in attempt.answers:
        question_id = str(record['question_id'])
        auto = Decimal(record.get('points_awarded', 0))
        override = overrides.get(question_id)
        value = override.override_score if override else auto
        auto_total += auto
        effective += value
        questions.append({
            'question_id': question_id,
            'auto_score': as_number(auto),
            'effective_score': as_number(value),
            'points_possible': record.get('points_possible'),
            'is_overridden': override is not None,
            'override_id': str(override.id) if override else None,
            'reason': override.reason if override else None,
        })

    max_score = attempt.max_score
    return {
        'attempt_id': str(attempt.id),
        'questions': questions,
        'auto_score': as_number(auto_total),
        'effective_score': as_number(effective),
        'max_score': max_score,
        'percentage': percentage(effective, max_score),
        'passed': attempt.passed,
        'effective_passed': passes(effective, max_score, attempt.quiz.passing_score),
        'has_overrides': bool(overrides),
        'override_count': len(overrides),
        'total_adjustment': as_number(effective - auto_total),
    }


def apply_override(attempt_id, question_id, new_score, reason, actor):
    """
    Create or update the single override for (attempt, question).

    original_score is captured from the attempt's answer snapshot when the
    override is first created and is kept on later updates.
    """
    require_privileged(actor, 'override scores')
    attempt = get_attempt(attempt_id)
    if not same_organization(actor, attempt.user.organization_id):
        raise NotFound(f'Quiz attempt not found: {attempt_id}')

    try:
        question = attempt.quiz.questions.get(id=question_id)
    except (Question.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFound(f'Question {question_id} is not part of this quiz.')
    record = attempt.answer_for(question.id)
    if record is None:
        raise NotFound(f'Question {question_id} was not part of this attempt.')

    try:
        score = to_decimal(new_score)
    except ValueError:
        raise ValidationError('Override score must be a number.')
    if score < 0 or score > question.points:
        raise ValidationError(f'Override score must be between 0 and {question.points}.')

    reason = (reason or '').strip()
    min_length = settings.SCORE_OVERRIDE_MIN_REASON_LENGTH
    if len(reason) < min_length:
        raise ValidationError(f'Reason must be at least {min_length} characters.')

    with transaction.atomic():
        override, created = ScoreOverride.objects.select_for_update().get_or_create(
            quiz_attempt=attempt,
            question=question,
            defaults={
                'original_score': Decimal(record.get('points_awarded', 0)),
                'override_score': score,
                'reason': reason,
                'created_by': actor,
            },
        )
        if not created:
            override.override_score = score
            override.reason = reason
            override.updated_by = actor
            override.save(update_fields=['override_score', 'reason', 'updated_by', 'updated_at'])

    logger.info(
        'Score override %s on attempt %s question %s: %s -> %s by %s',
        'created' if created else 'updated', attempt.id, question.id,
        override.original_score, score, actor.id,
    )
    sync_after_override(attempt)
    return override, created


def remove_override(override_id, actor):
    """Delete an override; the question reverts to its automatic score. Returns the attempt."""
    require_privileged(actor, 'remove score overrides')
    try:
        override = ScoreOverride.objects.select_related('quiz_attempt__user', 'quiz_attempt__quiz').get(id=override_id)
    except (ScoreOverride.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFound(f'Score override not found: {override_id}')
    attempt = override.quiz_attempt
    if not same_organization(actor, attempt.user.organization_id):
        raise NotFound(f'Score override not found: {override_id}')

    override.delete()
    logger.info('Score override %s removed from attempt %s by %s', override_id, attempt.id, actor.id)
    sync_after_override(attempt)
    return attempt


def sync_after_override(attempt):
    """
    An override can flip an attempt's pass. Standalone quiz assignments and
    module progress follow the effective result; failures are logged and
    left to the next reconcile run.
    """
    from trainee.services import reconciliation

    quiz = attempt.quiz
    try:
        if quiz.module_id:
            reconciliation.reconcile(attempt.user, quiz.module.course_id)
        else:
            reconciliation.reconcile_quiz_assignments(attempt.user, quiz_id=quiz.id)
    except (DatabaseError, APIException):
        logger.exception('Sync after score override failed for attempt %s', attempt.id)


def attempt_for_actor(attempt_id, actor):
    """The attempt, if the actor may see it: their own, or any in their organization for admins"""
    attempt = get_attempt(attempt_id)
    require_learner_access(actor, attempt.user)
    return attempt


def attempt_review(attempt_id, actor):
    """
    Question-by-question review. Correctness is re-derived with the same
    evaluator used at submission, so the two can never disagree.
    """
    attempt = attempt_for_actor(attempt_id, actor)
    questions = {str(q.id): q for q in attempt.quiz.questions.all()}
    breakdown = effective_score(attempt)
    scored = {item['question_id']: item for item in breakdown['questions']}

    items = []
    for record in attempt.answers:
        question_id = str(record['question_id'])
        question = questions.get(question_id)
        answer_text = record.get('answer_text', '')
        item = dict(scored[question_id])
        item.update({
            'answer_text': answer_text,
            'is_correct': record.get('is_correct', False),
        })
        if question is not None:
            item.update({
                'question_text': question.text,
                'question_type': question.type,
                'correct_answer': question.correct_answer,
                'explanation': question.explanation,
                'order': question.order,
                'is_correct': evaluate(answer_text, question.correct_answer, question.type, question.options),
            })
        items.append(item)

    breakdown['questions'] = items
    breakdown.update({
        'quiz_id': str(attempt.quiz_id),
        'quiz_title': attempt.quiz.title,
        'user_id': str(attempt.user_id),
        'attempt_number': attempt.attempt_number,
        'passing_score': attempt.quiz.passing_score,
        'started_at': attempt.started_at,
        'completed_at': attempt.completed_at,
        'time_spent': attempt.time_spent_seconds,
    })
    return breakdown


def quiz_results(quiz_id, actor):
    """Every attempt of a quiz within the actor's organization, with effective scores"""
    require_privileged(actor, 'view quiz results')
    from trainee.services.quiz_scoring import get_quiz
    quiz = get_quiz(quiz_id)

    attempts = QuizAttempt.objects.filter(quiz=quiz).select_related('user', 'quiz').prefetch_related('overrides')
    if actor.organization_id is not None:
        attempts = attempts.filter(user__organization_id=actor.organization_id)

    results = []
    for attempt in attempts.order_by('user__email', 'attempt_number'):
        summary = effective_score(attempt)
        results.append({
            'attempt_id': str(attempt.id),
            'user_id': str(attempt.user_id),
            'user_email': attempt.user.email,
            'user_name': attempt.user.full_name,
            'attempt_number': attempt.attempt_number,
            'score': attempt.score,
            'max_score': attempt.max_score,
            'passed': attempt.passed,
            'effective_score': summary['effective_score'],
            'effective_passed': summary['effective_passed'],
            'percentage': summary['percentage'],
            'has_overrides': summary['has_overrides'],
            'override_count': summary['override_count'],
            'total_adjustment': summary['total_adjustment'],
            'completed_at': attempt.completed_at,
        })
    return {
        'quiz_id': str(quiz.id),
        'quiz_title': quiz.title,
        'passing_score': quiz.passing_score,
        'attempts': results,
    }
