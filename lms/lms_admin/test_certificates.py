import uuid

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from lms.exceptions import AuthorizationError, ValidationError
from lms_admin.models import Assignment
from lms_admin.services.certificates import review_certificate, upload_certificate
from trainee.testing import make_assignment, make_profile, new_org


class CertificateFlowTest(TestCase):

    def setUp(self):
        self.admin = make_profile(role='admin')
        self.learner = make_profile()
        self.assignment = make_assignment(self.learner, uuid.uuid4(), 'compliance_training')

    def test_upload_then_verify_completes_assignment(self):
        upload_certificate(self.assignment.id, self.learner, notes='First aid card')
        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.certificate_status, 'uploaded')
        self.assertIsNotNone(self.assignment.certificate_uploaded_at)

        reviewed = review_certificate(self.assignment.id, self.admin, approve=True, notes='Looks valid')

        self.assertEqual(reviewed.certificate_status, 'verified')
        self.assertEqual(reviewed.verified_by, self.admin)
        self.assertIsNotNone(reviewed.verified_at)
        self.assertEqual(reviewed.status, Assignment.STATUS_COMPLETED)
        self.assertEqual(reviewed.completion_score, 100)

    def test_verified_course_certificate_waits_for_modules(self):
        course_assignment = make_assignment(self.learner, uuid.uuid4(), 'course', certificate_status=None)
        upload_certificate(course_assignment.id, self.learner)

        reviewed = review_certificate(course_assignment.id, self.admin, approve=True)

        self.assertEqual(reviewed.certificate_status, 'verified')
        self.assertEqual(reviewed.status, Assignment.STATUS_PENDING)
        self.assertIsNone(reviewed.completed_at)

    def test_rejection_allows_reupload(self):
        upload_certificate(self.assignment.id, self.learner)
        reviewed = review_certificate(self.assignment.id, self.admin, approve=False, notes='Expired card')

        self.assertEqual(reviewed.certificate_status, 'rejected')
        self.assertEqual(reviewed.verification_notes, 'Expired card')
        self.assertEqual(reviewed.status, Assignment.STATUS_PENDING)

        upload_certificate(self.assignment.id, self.learner)
        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.certificate_status, 'uploaded')

    def test_only_uploaded_certificates_are_reviewed(self):
        with self.assertRaises(ValidationError):
            review_certificate(self.assignment.id, self.admin, approve=True)

        upload_certificate(self.assignment.id, self.learner)
        review_certificate(self.assignment.id, self.admin, approve=True)
        with self.assertRaises(ValidationError):
            review_certificate(self.assignment.id, self.admin, approve=False)

    def test_cannot_upload_twice_while_pending_review(self):
        upload_certificate(self.assignment.id, self.learner)
        with self.assertRaises(ValidationError):
            upload_certificate(self.assignment.id, self.learner)

    def test_only_owner_uploads(self):
        with self.assertRaises(AuthorizationError):
            upload_certificate(self.assignment.id, make_profile())

    def test_only_privileged_review(self):
        upload_certificate(self.assignment.id, self.learner)
        with self.assertRaises(AuthorizationError):
            review_certificate(self.assignment.id, self.learner, approve=True)
        with self.assertRaises(AuthorizationError):
            review_certificate(self.assignment.id, make_profile(role='trainer'), approve=True)

    def test_reviewer_from_another_organization(self):
        org = new_org()
        learner = make_profile(organization_id=org)
        assignment = make_assignment(learner, uuid.uuid4(), 'compliance_training')
        upload_certificate(assignment.id, learner)

        outsider = make_profile(role='admin', organization_id=new_org())
        with self.assertRaises(AuthorizationError):
            review_certificate(assignment.id, outsider, approve=True)


class CertificateApiTest(APITestCase):

    def setUp(self):
        self.admin = make_profile(role='manager')
        self.learner = make_profile()
        self.assignment = make_assignment(self.learner, uuid.uuid4(), 'compliance_training')
        self.client = APIClient()

    def test_upload_and_review(self):
        self.client.force_authenticate(user=self.learner)
        response = self.client.post(f'/api/admin/assignments/{self.assignment.id}/certificate/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['certificate_status'], 'uploaded')

        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            f'/api/admin/assignments/{self.assignment.id}/certificate/review/',
            {'approve': True, 'notes': 'ok'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['certificate_status'], 'verified')
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['verified_by_id'], str(self.admin.id))

    def test_review_without_upload_is_400(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            f'/api/admin/assignments/{self.assignment.id}/certificate/review/', {'approve': False}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_error')
