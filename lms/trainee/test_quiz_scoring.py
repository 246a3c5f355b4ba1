"""
Tests for quiz submission, attempt numbering and attempt limits
"""
from datetime import timedelta
from unittest import mock

from django.db import DatabaseError, IntegrityError
from django.test import TestCase, override_settings
from django.utils import timezone

from lms.exceptions import AttemptConflict, AttemptLimitExceeded, NotFound, QuizLocked, QuizNotAvailable
from lms_admin.models import Assignment
from trainee.models import ModuleProgress, QuizAttempt
from trainee.services import quiz_scoring, reconciliation
from trainee.testing import (
    make_assignment, make_course, make_module, make_profile, make_question, make_quiz, make_safety101,
)


class Safety101ScenarioTest(TestCase):
    """MC correct, TF correct, short answer 'yes' against 'Yes' -> 4/4, passed"""

    def setUp(self):
        self.user = make_profile()
        self.quiz, self.mc, self.tf, self.sa = make_safety101()

    def test_case_insensitive_short_answer_passes(self):
        result = quiz_scoring.submit_attempt(self.quiz.id, self.user, {
            str(self.mc.id): 'Wear a helmet',
            str(self.tf.id): 'true',
            str(self.sa.id): 'yes',
        })

        self.assertEqual(result['score'], 4)
        self.assertEqual(result['max_score'], 4)
        self.assertTrue(result['passed'])
        self.assertEqual(result['attempt_number'], 1)

        attempt = QuizAttempt.objects.get(id=result['attempt_id'])
        self.assertEqual(attempt.score, 4)
        self.assertTrue(attempt.passed)
        self.assertIsNotNone(attempt.completed_at)

    def test_every_question_gets_an_answer_record(self):
        result = quiz_scoring.submit_attempt(self.quiz.id, self.user, {str(self.mc.id): 'Wear a helmet'})

        attempt = QuizAttempt.objects.get(id=result['attempt_id'])
        self.assertEqual(len(attempt.answers), 3)
        missing = attempt.answer_for(self.sa.id)
        self.assertEqual(missing['answer_text'], '')
        self.assertFalse(missing['is_correct'])
        self.assertEqual(missing['points_awarded'], 0)
        self.assertEqual(missing['points_possible'], 2)
        self.assertEqual(result['score'], 1)
        self.assertFalse(result['passed'])

    def test_list_shaped_answers_and_unknown_questions(self):
        result = quiz_scoring.submit_attempt(self.quiz.id, self.user, [
            {'question_id': str(self.mc.id), 'answer_text': 'Wear a helmet'},
            {'question_id': str(self.tf.id), 'answer_text': 'true'},
            {'question_id': str(self.sa.id), 'answer_text': {'answer': 'Yes'}},
            {'question_id': 'not-a-question', 'answer_text': 'x'},
        ])
        self.assertEqual(result['score'], 4)
        self.assertEqual(len(result['answers']), 3)

    def test_pass_threshold_is_inclusive(self):
        # 3 of 4 points = 75% >= 70%
        result = quiz_scoring.submit_attempt(self.quiz.id, self.user, {
            str(self.mc.id): 'Wear a helmet',
            str(self.sa.id): 'Yes',
        })
        self.assertEqual(result['score'], 3)
        self.assertTrue(result['passed'])

    def test_time_spent_and_forced_submission(self):
        self.quiz.time_limit_minutes = 10
        self.quiz.save()
        started = timezone.now() - timedelta(minutes=12)

        result = quiz_scoring.submit_attempt(self.quiz.id, self.user, {}, started_at=started)

        self.assertGreaterEqual(result['time_spent'], 12 * 60)
        self.assertTrue(result['timed_out'])
        self.assertEqual(QuizAttempt.objects.filter(quiz=self.quiz, user=self.user).count(), 1)


class AttemptNumberingTest(TestCase):

    def setUp(self):
        self.user = make_profile()
        self.quiz, self.mc, self.tf, self.sa = make_safety101(max_attempts=5)

    def test_numbers_are_sequential_without_gaps(self):
        for _ in range(4):
            quiz_scoring.submit_attempt(self.quiz.id, self.user, {})

        numbers = list(
            QuizAttempt.objects.filter(quiz=self.quiz, user=self.user)
            .order_by('attempt_number').values_list('attempt_number', flat=True)
        )
        self.assertEqual(numbers, [1, 2, 3, 4])

    def test_numbering_is_per_user(self):
        other = make_profile()
        quiz_scoring.submit_attempt(self.quiz.id, self.user, {})
        result = quiz_scoring.submit_attempt(self.quiz.id, other, {})
        self.assertEqual(result['attempt_number'], 1)

    def test_conflict_is_retried(self):
        real_create = QuizAttempt.objects.create
        calls = []

        def flaky_create(**kwargs):
            calls.append(kwargs['attempt_number'])
            if len(calls) == 1:
                raise IntegrityError('duplicate attempt number')
            return real_create(**kwargs)

        with mock.patch.object(QuizAttempt.objects, 'create', side_effect=flaky_create):
            result = quiz_scoring.submit_attempt(self.quiz.id, self.user, {})

        self.assertEqual(len(calls), 2)
        self.assertEqual(result['attempt_number'], 1)

    @override_settings(QUIZ_ATTEMPT_NUMBER_RETRIES=2)
    def test_persistent_conflict_raises(self):
        with mock.patch.object(QuizAttempt.objects, 'create', side_effect=IntegrityError('duplicate')):
            with self.assertRaises(AttemptConflict):
                quiz_scoring.submit_attempt(self.quiz.id, self.user, {})
        self.assertFalse(QuizAttempt.objects.filter(quiz=self.quiz).exists())


class AttemptLimitTest(TestCase):

    def setUp(self):
        self.user = make_profile()
        self.quiz, *_ = make_safety101(max_attempts=2)

    def test_third_attempt_is_rejected_without_writing(self):
        quiz_scoring.submit_attempt(self.quiz.id, self.user, {})
        quiz_scoring.submit_attempt(self.quiz.id, self.user, {})

        with self.assertRaises(AttemptLimitExceeded):
            quiz_scoring.submit_attempt(self.quiz.id, self.user, {})
        self.assertEqual(QuizAttempt.objects.filter(quiz=self.quiz, user=self.user).count(), 2)

    def test_status_reports_remaining(self):
        quiz_scoring.submit_attempt(self.quiz.id, self.user, {})
        status = quiz_scoring.quiz_status(self.quiz.id, self.user)

        self.assertEqual(status['attempts_used'], 1)
        self.assertEqual(status['attempts_remaining'], 1)
        self.assertTrue(status['can_attempt'])
        self.assertEqual(status['latest_attempt']['attempt_number'], 1)
        self.assertFalse(status['has_passed'])


class QuizAvailabilityTest(TestCase):

    def setUp(self):
        self.user = make_profile()

    def test_empty_quiz_cannot_be_submitted(self):
        quiz = make_quiz(title='Empty')
        with self.assertRaises(QuizNotAvailable):
            quiz_scoring.submit_attempt(quiz.id, self.user, {})
        with self.assertRaises(QuizNotAvailable):
            quiz_scoring.start_quiz(quiz.id, self.user)
        self.assertFalse(QuizAttempt.objects.exists())

    def test_unknown_quiz(self):
        with self.assertRaises(NotFound):
            quiz_scoring.submit_attempt('00000000-0000-0000-0000-000000000000', self.user, {})
        with self.assertRaises(NotFound):
            quiz_scoring.quiz_status('not-a-uuid', self.user)

    def test_start_is_locked_until_video_watched(self):
        course = make_course()
        module = make_module(course, 1, content_type='video', duration_minutes=10)
        quiz = make_quiz(module=module)
        make_question(quiz, 'true_false', 'true')

        with self.assertRaises(QuizLocked):
            quiz_scoring.start_quiz(quiz.id, self.user)

        ModuleProgress.objects.create(
            user=self.user, course=course, module=module, status='completed', video_progress_percentage=95,
        )
        started = quiz_scoring.start_quiz(quiz.id, self.user)
        self.assertEqual(started['attempt_number'], 1)
        self.assertEqual(len(started['questions']), 1)

    def test_submit_is_locked_until_video_watched(self):
        course = make_course()
        module = make_module(course, 1, content_type='video', duration_minutes=10)
        quiz = make_quiz(module=module)
        question = make_question(quiz, 'true_false', 'true')
        ModuleProgress.objects.create(
            user=self.user, course=course, module=module, status='in_progress', video_progress_percentage=50,
        )

        with self.assertRaises(QuizLocked):
            quiz_scoring.submit_attempt(quiz.id, self.user, {str(question.id): 'true'})

        self.assertFalse(QuizAttempt.objects.exists())
        progress = ModuleProgress.objects.get(user=self.user, module=module)
        self.assertEqual(progress.status, 'in_progress')

    def test_status_reports_video_lock(self):
        course = make_course()
        module = make_module(course, 1, content_type='video', duration_minutes=10)
        quiz = make_quiz(module=module)
        make_question(quiz, 'true_false', 'true')

        status = quiz_scoring.quiz_status(quiz.id, self.user)
        self.assertTrue(status['locked'])
        self.assertFalse(status['can_attempt'])
        self.assertEqual(status['attempts_remaining'], 3)

        ModuleProgress.objects.create(
            user=self.user, course=course, module=module, status='completed', video_progress_percentage=90,
        )
        status = quiz_scoring.quiz_status(quiz.id, self.user)
        self.assertFalse(status['locked'])
        self.assertTrue(status['can_attempt'])

    def test_start_hides_short_answer_options(self):
        quiz = make_quiz()
        make_question(quiz, 'short_answer', 'Yes', options={'accepted_answers': ['Yep']})
        started = quiz_scoring.start_quiz(quiz.id, self.user)
        self.assertIsNone(started['questions'][0]['options'])
        self.assertNotIn('correct_answer', started['questions'][0])


class SubmissionSideEffectsTest(TestCase):

    def setUp(self):
        self.user = make_profile()

    def test_module_quiz_pass_completes_module(self):
        course = make_course()
        module = make_module(course, 1)
        make_module(course, 2)
        quiz = make_quiz(module=module)
        question = make_question(quiz, 'true_false', 'true')

        quiz_scoring.submit_attempt(quiz.id, self.user, {str(question.id): 'true'})

        progress = ModuleProgress.objects.get(user=self.user, module=module)
        self.assertEqual(progress.status, 'completed')
        self.assertEqual(progress.completion_source, 'quiz')
        self.assertEqual(progress.progress_percentage, 100)

    def test_module_quiz_fail_leaves_progress_alone(self):
        course = make_course()
        module = make_module(course, 1)
        quiz = make_quiz(module=module)
        question = make_question(quiz, 'true_false', 'true')

        quiz_scoring.submit_attempt(quiz.id, self.user, {str(question.id): 'false'})
        self.assertFalse(ModuleProgress.objects.filter(user=self.user, module=module).exists())

    def test_last_module_pass_completes_course_assignment(self):
        course = make_course()
        module = make_module(course, 1)
        assignment = make_assignment(self.user, course.id, 'course')
        quiz = make_quiz(module=module)
        question = make_question(quiz, 'true_false', 'true')

        quiz_scoring.submit_attempt(quiz.id, self.user, {str(question.id): 'true'})

        assignment.refresh_from_db()
        self.assertEqual(assignment.status, Assignment.STATUS_COMPLETED)
        self.assertEqual(assignment.completion_score, 100)

    def test_standalone_quiz_assignment_completes_on_pass(self):
        quiz, mc, tf, sa = make_safety101()
        assignment = make_assignment(self.user, quiz.id, 'quiz')

        quiz_scoring.submit_attempt(quiz.id, self.user, {
            str(mc.id): 'Wear a helmet', str(tf.id): 'true', str(sa.id): 'yes',
        })

        assignment.refresh_from_db()
        self.assertEqual(assignment.status, Assignment.STATUS_COMPLETED)
        self.assertEqual(assignment.completion_score, 100)
        self.assertIsNotNone(assignment.started_at)

    def test_standalone_quiz_fail_records_score_only(self):
        quiz, mc, tf, sa = make_safety101()
        assignment = make_assignment(self.user, quiz.id, 'quiz')

        quiz_scoring.submit_attempt(quiz.id, self.user, {str(mc.id): 'Wear a helmet'})

        assignment.refresh_from_db()
        self.assertEqual(assignment.status, Assignment.STATUS_IN_PROGRESS)
        self.assertEqual(assignment.completion_score, 25)

    def test_side_effect_failure_does_not_fail_submission(self):
        quiz, mc, tf, sa = make_safety101()
        make_assignment(self.user, quiz.id, 'quiz')

        with mock.patch('trainee.services.quiz_scoring.apply_quiz_result', side_effect=NotFound('gone')):
            result = quiz_scoring.submit_attempt(quiz.id, self.user, {str(mc.id): 'Wear a helmet'})

        self.assertEqual(result['attempt_number'], 1)
        self.assertTrue(QuizAttempt.objects.filter(id=result['attempt_id']).exists())

    def test_lost_assignment_update_is_healed(self):
        quiz, mc, tf, sa = make_safety101()
        assignment = make_assignment(self.user, quiz.id, 'quiz')

        with mock.patch('trainee.services.quiz_scoring.apply_quiz_result', side_effect=DatabaseError('timeout')):
            result = quiz_scoring.submit_attempt(quiz.id, self.user, {
                str(mc.id): 'Wear a helmet', str(tf.id): 'true', str(sa.id): 'yes',
            })

        self.assertTrue(result['passed'])
        assignment.refresh_from_db()
        self.assertEqual(assignment.status, Assignment.STATUS_PENDING)

        healed = reconciliation.reconcile_quiz_assignments(self.user)

        self.assertEqual(healed.completed, 1)
        assignment.refresh_from_db()
        self.assertEqual(assignment.status, Assignment.STATUS_COMPLETED)
        self.assertEqual(assignment.completion_score, 100)
        self.assertEqual(reconciliation.reconcile_quiz_assignments(self.user).completed, 0)
