"""
API tests for the trainee endpoints
Status codes and the {"error", "code"} body of every failure kind
"""
import uuid

from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from lms_admin.models import Assignment
from trainee.models import ModuleProgress, QuizAttempt, ScoreOverride
from trainee.testing import (
    make_assignment, make_attempt, make_course, make_module, make_profile, make_question, make_quiz, make_safety101,
)


class QuizApiTest(APITestCase):

    def setUp(self):
        self.learner = make_profile()
        self.client = APIClient()
        self.client.force_authenticate(user=self.learner)
        self.quiz, self.mc, self.tf, self.sa = make_safety101(max_attempts=1)

    def test_submit_returns_scored_attempt(self):
        response = self.client.post(
            f'/api/trainee/quiz/{self.quiz.id}/submit/',
            {'answers': {str(self.mc.id): 'Wear a helmet', str(self.tf.id): 'true', str(self.sa.id): 'yes'}},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['score'], 4)
        self.assertEqual(response.data['max_score'], 4)
        self.assertTrue(response.data['passed'])
        self.assertEqual(response.data['attempts_remaining'], 0)

    def test_attempt_limit_is_403(self):
        make_attempt(self.quiz, self.learner, passed=False)

        response = self.client.post(f'/api/trainee/quiz/{self.quiz.id}/submit/', {'answers': {}}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'attempt_limit_exceeded')
        self.assertIn('Maximum number of attempts', response.data['error'])
        self.assertEqual(QuizAttempt.objects.filter(quiz=self.quiz).count(), 1)

    def test_malformed_answers_are_400(self):
        response = self.client.post(f'/api/trainee/quiz/{self.quiz.id}/submit/', {'answers': 'all of them'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_error')
        self.assertIn('answers', response.data['error'])

    def test_unknown_quiz_is_404(self):
        response = self.client.get(f'/api/trainee/quiz/{uuid.uuid4()}/status/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_empty_quiz_is_400(self):
        quiz = make_quiz(title='Empty')
        response = self.client.post(f'/api/trainee/quiz/{quiz.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'quiz_not_available')

    def test_locked_quiz_is_403(self):
        course = make_course()
        module = make_module(course, 1, content_type='video')
        quiz = make_quiz(module=module)
        make_question(quiz, 'true_false', 'true')

        response = self.client.post(f'/api/trainee/quiz/{quiz.id}/start/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data, {
            'error': 'Complete the video before taking the quiz.',
            'code': 'quiz_locked',
        })

    def test_results_need_privileged_role(self):
        response = self.client.get(f'/api/trainee/quiz/{self.quiz.id}/results/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'authorization_error')

    def test_unauthenticated_is_401(self):
        client = APIClient()
        response = client.get(f'/api/trainee/quiz/{self.quiz.id}/status/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('code', response.data)


class OverrideApiTest(APITestCase):

    def setUp(self):
        self.admin = make_profile(role='admin')
        self.learner = make_profile()
        self.quiz, self.mc, self.tf, self.sa = make_safety101()
        self.attempt = make_attempt(self.quiz, self.learner, passed=True)
        self.client = APIClient()
        self.client.force_authenticate(user=self.admin)
        self.url = f'/api/trainee/attempts/{self.attempt.id}/overrides/'

    def test_create_then_update(self):
        payload = {'question_id': str(self.sa.id), 'override_score': 1, 'reason': 'Half credit'}

        response = self.client.post(self.url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['effective_score']['effective_score'], 3)

        payload['override_score'] = 0
        response = self.client.post(self.url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['effective_score']['effective_score'], 2)
        self.assertEqual(ScoreOverride.objects.count(), 1)

    def test_out_of_range_score_is_400(self):
        response = self.client.post(
            self.url, {'question_id': str(self.sa.id), 'override_score': 5, 'reason': 'Bonus points'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_error')
        self.assertIn('between 0 and 2', response.data['error'])

    def test_learner_cannot_override(self):
        self.client.force_authenticate(user=self.learner)
        response = self.client.post(
            self.url, {'question_id': str(self.sa.id), 'override_score': 2, 'reason': 'I deserve it'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'authorization_error')

    def test_delete_reverts(self):
        create = self.client.post(
            self.url, {'question_id': str(self.sa.id), 'override_score': 0, 'reason': 'Copied answer'}, format='json',
        )
        override_id = create.data['override']['id']

        response = self.client.delete(f'/api/trainee/overrides/{override_id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['deleted'])
        self.assertEqual(response.data['effective_score']['effective_score'], 4)

    def test_learner_sees_own_effective_score(self):
        self.client.force_authenticate(user=self.learner)
        response = self.client.get(f'/api/trainee/attempts/{self.attempt.id}/effective-score/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['effective_score'], 4)


class ProgressApiTest(APITestCase):

    def setUp(self):
        self.learner = make_profile()
        self.client = APIClient()
        self.client.force_authenticate(user=self.learner)
        self.course = make_course()
        self.module = make_module(self.course, 1, content_type='video', duration_minutes=5)
        self.quiz = make_quiz(module=self.module)
        make_question(self.quiz, 'true_false', 'true')

    def test_video_progress_unlocks_quiz(self):
        url = f'/api/trainee/modules/{self.module.id}/video-progress/'

        response = self.client.post(url, {'percentage': 50}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['can_start_quiz'])
        self.assertEqual(response.data['progress']['status'], 'in_progress')

        response = self.client.post(url, {'percentage': 95}, format='json')
        self.assertTrue(response.data['can_start_quiz'])
        self.assertEqual(response.data['progress']['status'], 'completed')

    def test_missing_percentage_is_400(self):
        response = self.client.post(f'/api/trainee/modules/{self.module.id}/video-progress/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_error')

    def test_course_progress_heals_first(self):
        make_attempt(self.quiz, self.learner, passed=True)

        response = self.client.get(f'/api/trainee/course/{self.course.id}/progress/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['reconciliation']['healed'], 1)
        self.assertEqual(response.data['overall_percentage'], 100)
        self.assertTrue(response.data['course_completed'])
        self.assertTrue(ModuleProgress.objects.get(user=self.learner, module=self.module).is_completed)

    def test_reconcile_for_another_learner_needs_admin(self):
        other = make_profile()
        make_attempt(self.quiz, other, passed=True)
        url = f'/api/trainee/course/{self.course.id}/reconcile/'

        response = self.client.post(url, {'user_id': str(other.id)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=make_profile(role='manager'))
        response = self.client.post(url, {'user_id': str(other.id)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['healed'], 1)
        self.assertTrue(response.data['course_complete'])

    def test_unknown_course_is_404(self):
        response = self.client.post(f'/api/trainee/course/{uuid.uuid4()}/reconcile/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_quiz_assignment_sync(self):
        quiz, *_ = make_safety101()
        assignment = make_assignment(self.learner, quiz.id, 'quiz')
        make_attempt(quiz, self.learner, passed=True)

        response = self.client.post('/api/trainee/quiz-assignments/reconcile/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['completed'], 1)
        self.assertEqual(response.data['failed'], 0)
        assignment.refresh_from_db()
        self.assertEqual(assignment.status, Assignment.STATUS_COMPLETED)

        response = self.client.post('/api/trainee/quiz-assignments/reconcile/', {}, format='json')
        self.assertEqual(response.data['completed'], 0)
