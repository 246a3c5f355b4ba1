"""
Quiz Scoring Engine

Scores a submission against every question of the quiz, numbers the
attempt and persists it. Attempt numbers are assigned under a row lock
with the (quiz, user, attempt_number) unique constraint as the backstop;
a lost race is retried, never silently duplicated.
"""
import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import APIException

from lms.exceptions import (
    AttemptConflict, AttemptLimitExceeded, NotFound, PersistenceError, QuizLocked, QuizNotAvailable,
)
from lms_admin.services.assignment_lifecycle import apply_quiz_result
from trainee.models import QuizAttempt
from trainee.services import module_progress, reconciliation
from trainee.services.answer_evaluator import score_question
from trainee.services.score_overrides import effective_passed, effective_score, passes
from trainee.utils.numbers import percentage, round_half_up
from trainer.models import Quiz

logger = logging.getLogger(__name__)


def get_quiz(quiz_id):
    try:
        return Quiz.objects.select_related('module__course').prefetch_related('questions').get(id=quiz_id)
    except (Quiz.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFound(f'Quiz not found: {quiz_id}')


def quiz_questions(quiz):
    return sorted(quiz.questions.all(), key=lambda q: (q.order, str(q.id)))


def _answer_text(value):
    if isinstance(value, dict):
        value = value.get('answer', value.get('answer_text'))
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def normalize_answers(questions, answers):
    """
    Map question id -> answer text for every question of the quiz.

    Accepts {question_id: answer} or [{question_id, answer_text}]; answers
    for unknown questions are dropped, missing ones become ''.
    """
    if isinstance(answers, list):
        pairs = [
            (item.get('question_id'), item.get('answer_text', item.get('answer')))
            for item in answers if isinstance(item, dict)
        ]
    else:
        pairs = list((answers or {}).items())

    known = {str(q.id) for q in questions}
    given = {}
    for question_id, value in pairs:
        question_id = str(question_id)
        if question_id not in known:
            logger.info('Ignoring answer for unknown question %s', question_id)
            continue
        given[question_id] = _answer_text(value)
    return {str(q.id): given.get(str(q.id), '') for q in questions}


def score_answers(questions, answer_map):
    """
    Evaluate every question. Returns (records, score, max_score) where each
    record is the snapshot stored on the attempt.
    """
    records = []
    score = 0
    max_score = 0
    for question in questions:
        answer_text = answer_map.get(str(question.id), '')
        is_correct, points = score_question(question, answer_text)
        score += points
        max_score += question.points
        records.append({
            'question_id': str(question.id),
            'answer_text': answer_text,
            'is_correct': is_correct,
            'points_awarded': points,
            'points_possible': question.points,
        })
    return records, score, max_score


def attempts_for(quiz, user):
    return QuizAttempt.objects.filter(quiz=quiz, user=user)


def _persist_attempt(quiz, user, records, score, max_score, passed, started_at, completed_at, time_spent):
    retries = settings.QUIZ_ATTEMPT_NUMBER_RETRIES
    for attempt_no in range(1, retries + 1):
        try:
            with transaction.atomic():
                numbers = [
                    a.attempt_number
                    for a in attempts_for(quiz, user).select_for_update().only('id', 'attempt_number')
                ]
                if len(numbers) >= quiz.max_attempts:
                    raise AttemptLimitExceeded(
                        f'Maximum number of attempts ({quiz.max_attempts}) reached for this quiz.'
                    )
                return QuizAttempt.objects.create(
                    quiz=quiz,
                    user=user,
                    attempt_number=max(numbers, default=0) + 1,
                    answers=records,
                    score=score,
                    max_score=max_score,
                    passed=passed,
                    started_at=started_at,
                    completed_at=completed_at,
                    time_spent_seconds=time_spent,
                )
        except IntegrityError:
            logger.warning(
                'Attempt number conflict for quiz %s user %s (try %d/%d)',
                quiz.id, user.id, attempt_no, retries,
            )
        except DatabaseError as e:
            logger.exception('Failed to save attempt for quiz %s user %s', quiz.id, user.id)
            raise PersistenceError() from e
    raise AttemptConflict()


def submit_attempt(quiz_id, user, answers, started_at=None):
    """
    Score and persist one attempt.

    Every question of the quiz is evaluated, answered or not. A submission
    past the time limit is still accepted (the client forces it when the
    countdown expires) and flagged timed_out.
    Module quizzes stay locked until the module's video requirement is met,
    checked again here because a client can post without calling start.
    """
    quiz = get_quiz(quiz_id)
    questions = quiz_questions(quiz)
    if not questions:
        raise QuizNotAvailable()

    if attempts_for(quiz, user).count() >= quiz.max_attempts:
        raise AttemptLimitExceeded(f'Maximum number of attempts ({quiz.max_attempts}) reached for this quiz.')

    if not quiz_unlocked(quiz, user):
        raise QuizLocked()

    records, score, max_score = score_answers(questions, normalize_answers(questions, answers))
    passed = passes(score, max_score, quiz.passing_score)

    completed_at = timezone.now()
    started_at = min(started_at or completed_at, completed_at)
    time_spent = int((completed_at - started_at).total_seconds())
    timed_out = bool(quiz.time_limit_minutes) and time_spent > quiz.time_limit_minutes * 60

    attempt = _persist_attempt(quiz, user, records, score, max_score, passed, started_at, completed_at, time_spent)
    logger.info(
        'Quiz attempt %s saved: quiz=%s user=%s number=%d score=%d/%d passed=%s',
        attempt.id, quiz.id, user.id, attempt.attempt_number, score, max_score, passed,
    )

    _after_submission(quiz, user, attempt)

    return {
        'attempt_id': str(attempt.id),
        'attempt_number': attempt.attempt_number,
        'score': score,
        'max_score': max_score,
        'percentage': percentage(score, max_score),
        'passed': passed,
        'passing_score': quiz.passing_score,
        'time_spent': time_spent,
        'timed_out': timed_out,
        'attempts_remaining': max(0, quiz.max_attempts - attempt.attempt_number),
        'answers': records,
    }


def _after_submission(quiz, user, attempt):
    """
    Progress and assignment updates that follow a committed attempt.
    Failures are logged only: the attempt stands and healing repairs the
    derived state on the next reconcile.
    """
    try:
        if quiz.module_id:
            if attempt.passed:
                module_progress.mark_module_completed(user, quiz.module, source='quiz')
                reconciliation.reconcile(user, quiz.module.course_id)
        else:
            apply_quiz_result(
                user, quiz.id,
                round_half_up(attempt.score / attempt.max_score * 100) if attempt.max_score else 0,
                attempt.passed,
            )
    except (DatabaseError, APIException):
        logger.exception('Post-submission update failed for attempt %s', attempt.id)


def quiz_unlocked(quiz, user):
    if not quiz.module_id:
        return True
    progress = module_progress.get_progress(user, quiz.module)
    return module_progress.can_start_quiz(quiz.module, progress)


def quiz_status(quiz_id, user):
    quiz = get_quiz(quiz_id)
    attempts = list(attempts_for(quiz, user).select_related('quiz').prefetch_related('overrides').order_by('attempt_number'))
    used = len(attempts)
    has_questions = bool(quiz_questions(quiz))
    unlocked = quiz_unlocked(quiz, user)
    latest = effective_score(attempts[-1]) if attempts else None
    return {
        'quiz_id': str(quiz.id),
        'title': quiz.title,
        'module_id': str(quiz.module_id) if quiz.module_id else None,
        'passing_score': quiz.passing_score,
        'max_attempts': quiz.max_attempts,
        'attempts_used': used,
        'attempts_remaining': max(0, quiz.max_attempts - used),
        'can_attempt': has_questions and unlocked and used < quiz.max_attempts,
        'locked': not unlocked,
        'has_questions': has_questions,
        'has_passed': any(effective_passed(a) for a in attempts),
        'latest_attempt': latest and dict(latest, attempt_number=attempts[-1].attempt_number),
    }


def start_quiz(quiz_id, user):
    """
    Checks that the learner may take the quiz now and returns the questions
    without their answers. Nothing is written; the attempt is numbered at
    submission.
    """
    quiz = get_quiz(quiz_id)
    questions = quiz_questions(quiz)
    if not questions:
        raise QuizNotAvailable()

    used = attempts_for(quiz, user).count()
    if used >= quiz.max_attempts:
        raise AttemptLimitExceeded(f'Maximum number of attempts ({quiz.max_attempts}) reached for this quiz.')

    if not quiz_unlocked(quiz, user):
        raise QuizLocked()

    return {
        'quiz_id': str(quiz.id),
        'title': quiz.title,
        'time_limit_minutes': quiz.time_limit_minutes,
        'passing_score': quiz.passing_score,
        'max_attempts': quiz.max_attempts,
        'attempt_number': used + 1,
        'started_at': timezone.now(),
        'total_questions': len(questions),
        'questions': [
            {
                'question_id': str(q.id),
                'type': q.type,
                'text': q.text,
                # short-answer options carry the accepted answers
                'options': q.options if q.type != 'short_answer' else None,
                'points': q.points,
                'order': q.order,
            }
            for q in questions
        ],
    }
