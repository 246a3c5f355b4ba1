from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from trainee.testing import make_course, make_module, make_profile, make_question, make_quiz, new_org


class CourseDetailApiTest(APITestCase):

    def setUp(self):
        self.learner = make_profile()
        self.client = APIClient()
        self.client.force_authenticate(user=self.learner)

    def test_modules_in_sequence_with_quizzes(self):
        course = make_course()
        make_module(course, 2, title='Second')
        first = make_module(course, 1, content_type='video', title='First')
        quiz = make_quiz(module=first)
        make_question(quiz, 'true_false', 'true', points=2)
        make_question(quiz, 'multiple_choice', 'A')

        response = self.client.get(f'/api/trainer/courses/{course.id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['title'] for m in response.data['modules']], ['First', 'Second'])
        first_data = response.data['modules'][0]
        self.assertTrue(first_data['requires_video'])
        self.assertEqual(first_data['quizzes'][0]['question_count'], 2)
        self.assertEqual(first_data['quizzes'][0]['max_score'], 3)
        self.assertEqual(response.data['modules'][1]['quizzes'], [])

    def test_other_organization_is_404(self):
        org_learner = make_profile(organization_id=new_org())
        course = make_course(organization_id=new_org())
        self.client.force_authenticate(user=org_learner)

        response = self.client.get(f'/api/trainer/courses/{course.id}/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_malformed_id_is_404(self):
        response = self.client.get('/api/trainer/courses/not-a-uuid/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
