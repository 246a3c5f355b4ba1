from django.db import models
from django.utils import timezone
import uuid


# Actor profile - mirrors the identity provider's users table
class Profile(models.Model):
	ROLE_CHOICES = [
		('superadmin', 'Super Admin'),
		('admin', 'Admin'),
		('manager', 'Manager'),
		('trainer', 'Trainer'),
		('trainee', 'Trainee'),
	]
	STATUS_CHOICES = [('active', 'active'), ('inactive', 'inactive'), ('archived', 'archived')]

	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, db_column='user_id')
	first_name = models.CharField(max_length=100, db_column='first_name')
	last_name = models.CharField(max_length=100, db_column='last_name')
	email = models.EmailField(unique=True, db_column='email')
	role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='trainee', db_column='primary_role')
	organization_id = models.UUIDField(blank=True, null=True, db_column='organization_id')
	status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_column='status')
	created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')
	updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')

	class Meta:
		db_table = 'users'
		indexes = [
			models.Index(fields=['organization_id']),
		]

	# DRF treats the profile itself as request.user
	is_authenticated = True
	is_anonymous = False

	@property
	def full_name(self):
		return f"{self.first_name} {self.last_name}".strip()

	@property
	def is_privileged(self):
		from django.conf import settings
		return self.role in settings.SCORE_OVERRIDE_ROLES

	def __str__(self):
		return self.full_name or self.email


class Assignment(models.Model):
	"""A unit of assigned training work with a pending -> in_progress -> completed lifecycle"""
	TYPE_CHOICES = [
		('course', 'Course'),
		('quiz', 'Quiz'),
		('compliance_training', 'Compliance Training'),
	]
	STATUS_PENDING = 'pending'
	STATUS_IN_PROGRESS = 'in_progress'
	STATUS_COMPLETED = 'completed'
	STATUS_CHOICES = [
		(STATUS_PENDING, 'Pending'),
		(STATUS_IN_PROGRESS, 'In Progress'),
		(STATUS_COMPLETED, 'Completed'),
	]
	PRIORITY_CHOICES = [('low', 'Low'), ('medium', 'Medium'), ('high', 'High')]
	CERTIFICATE_CHOICES = [
		('not_required', 'Not Required'),
		('uploaded', 'Uploaded'),
		('verified', 'Verified'),
		('rejected', 'Rejected'),
	]

	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, db_column='assignment_id')
	assignment_type = models.CharField(max_length=30, choices=TYPE_CHOICES, db_column='assignment_type')
	assigned_to = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name='training_assignments', db_column='assigned_to')
	assigned_by = models.ForeignKey(Profile, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_assignments', db_column='assigned_by')
	organization_id = models.UUIDField(blank=True, null=True, db_column='organization_id')
	content_id = models.UUIDField(db_column='content_id')
	content_title = models.CharField(max_length=500, blank=True, default='', db_column='content_title')
	priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium', db_column='priority')
	status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_column='status')
	assigned_at = models.DateTimeField(default=timezone.now, db_column='assigned_at')
	due_date = models.DateTimeField(blank=True, null=True, db_column='due_date')
	started_at = models.DateTimeField(blank=True, null=True, db_column='started_at')
	completed_at = models.DateTimeField(blank=True, null=True, db_column='completed_at')
	completion_score = models.IntegerField(blank=True, null=True, db_column='completion_score')
	certificate_status = models.CharField(max_length=20, choices=CERTIFICATE_CHOICES, blank=True, null=True, db_column='certificate_status')
	certificate_uploaded_at = models.DateTimeField(blank=True, null=True, db_column='certificate_uploaded_at')
	verified_by = models.ForeignKey(Profile, on_delete=models.SET_NULL, null=True, blank=True, related_name='verified_assignments', db_column='verified_by')
	verified_at = models.DateTimeField(blank=True, null=True, db_column='verified_at')
	verification_notes = models.TextField(blank=True, null=True, db_column='verification_notes')
	updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')

	class Meta:
		db_table = 'training_assignments'
		ordering = ['-assigned_at']
		indexes = [
			models.Index(fields=['assigned_to', 'status']),
			models.Index(fields=['assignment_type', 'content_id']),
		]

	@property
	def is_completed(self):
		return self.status == self.STATUS_COMPLETED

	def __str__(self):
		return f"{self.assignment_type} {self.content_id} -> {self.assigned_to_id} ({self.status})"
