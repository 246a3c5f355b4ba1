"""
Factories shared by the test modules of all apps
"""
import itertools
import uuid

from django.utils import timezone

from lms_admin.models import Assignment, Profile
from trainee.models import QuizAttempt
from trainer.models import Course, Module, Quiz, Question

_counter = itertools.count(1)


def make_profile(role='trainee', organization_id=None, email=None, **extra):
    n = next(_counter)
    return Profile.objects.create(
        first_name=extra.pop('first_name', f'User{n}'),
        last_name=extra.pop('last_name', role.title()),
        email=email or f'{role}{n}@example.com',
        role=role,
        organization_id=organization_id,
        **extra
    )


def make_course(title='Workplace Safety', organization_id=None, modules=0, content_type='text'):
    course = Course.objects.create(title=title, status='published', organization_id=organization_id)
    for order in range(1, modules + 1):
        make_module(course, order, content_type=content_type)
    return course


def make_module(course, sequence_order, content_type='text', duration_minutes=None, title=None):
    return Module.objects.create(
        course=course,
        title=title or f'Module {sequence_order}',
        sequence_order=sequence_order,
        content_type=content_type,
        duration_minutes=duration_minutes,
        video_url='https://videos.example.com/v.mp4' if content_type != 'text' else None,
    )


def make_quiz(module=None, title='Quiz', passing_score=70, max_attempts=3, time_limit_minutes=None):
    return Quiz.objects.create(
        module=module,
        title=title,
        passing_score=passing_score,
        max_attempts=max_attempts,
        time_limit_minutes=time_limit_minutes,
    )


def make_question(quiz, type='multiple_choice', correct_answer='A', points=1, order=None, options=None, text=None):
    if options is None:
        options = {
            'multiple_choice': ['A', 'B', 'C', 'D'],
            'true_false': ['true', 'false'],
            'short_answer': {},
        }[type]
    return Question.objects.create(
        quiz=quiz,
        type=type,
        text=text or f'{type} question',
        options=options,
        correct_answer=correct_answer,
        points=points,
        order=order if order is not None else quiz.questions.count() + 1,
    )


def make_safety101(module=None, max_attempts=3):
    """Quiz 'Safety101': MC 1pt, TF 1pt, short answer 'Yes' 2pts, pass at 70"""
    quiz = make_quiz(module=module, title='Safety101', passing_score=70, max_attempts=max_attempts)
    mc = make_question(quiz, 'multiple_choice', 'Wear a helmet', points=1, order=1,
                       options=['Wear a helmet', 'Run', 'Ignore signs'])
    tf = make_question(quiz, 'true_false', 'true', points=1, order=2)
    sa = make_question(quiz, 'short_answer', 'Yes', points=2, order=3)
    return quiz, mc, tf, sa


def make_attempt(quiz, user, attempt_number=1, passed=True, answers=None, score=None):
    """Attempt row written directly, as if committed by an earlier submission"""
    questions = list(quiz.questions.order_by('order'))
    if answers is None:
        answers = [
            {
                'question_id': str(q.id),
                'answer_text': q.correct_answer if passed else '',
                'is_correct': passed,
                'points_awarded': q.points if passed else 0,
                'points_possible': q.points,
            }
            for q in questions
        ]
    max_score = sum(q.points for q in questions)
    now = timezone.now()
    return QuizAttempt.objects.create(
        quiz=quiz,
        user=user,
        attempt_number=attempt_number,
        answers=answers,
        score=score if score is not None else sum(a['points_awarded'] for a in answers),
        max_score=max_score,
        passed=passed,
        started_at=now,
        completed_at=now,
    )


def make_assignment(user, content_id, assignment_type='course', status=Assignment.STATUS_PENDING, **extra):
    return Assignment.objects.create(
        assignment_type=assignment_type,
        assigned_to=user,
        organization_id=user.organization_id,
        content_id=content_id,
        status=status,
        **extra
    )


def new_org():
    return uuid.uuid4()
