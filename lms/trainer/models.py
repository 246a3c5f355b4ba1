"""
Authored training content: courses, their ordered modules, quizzes and
questions. Reference data for the progress and scoring engine; created
through the Django admin site and never mutated by learner activity.
"""
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone
import uuid

from lms_admin.models import Profile


class Course(models.Model):
    """Maps to courses table"""

    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('published', 'Published'),
        ('archived', 'Archived'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, db_column='course_id')
    title = models.CharField(max_length=500, db_column='title')
    description = models.TextField(blank=True, null=True, db_column='description')
    status = models.CharField(max_length=20, default='draft', choices=STATUS_CHOICES, db_column='status')
    organization_id = models.UUIDField(blank=True, null=True, db_column='organization_id')
    created_by = models.ForeignKey(
        Profile, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_courses', db_column='created_by',
    )
    created_at = models.DateTimeField(default=timezone.now, db_column='created_at')
    updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')

    class Meta:
        db_table = 'courses'
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class Module(models.Model):
    """Ordered unit of a course - text and/or video content, optionally one quiz"""

    CONTENT_TYPE_CHOICES = [
        ('text', 'Text'),
        ('video', 'Video'),
        ('mixed', 'Mixed'),
    ]
    VIDEO_CONTENT_TYPES = ('video', 'mixed')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, db_column='module_id')
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='modules', db_column='course_id')
    title = models.CharField(max_length=255, db_column='title')
    description = models.TextField(blank=True, null=True, db_column='description')
    sequence_order = models.PositiveIntegerField(db_column='sequence_order')
    content_type = models.CharField(max_length=10, choices=CONTENT_TYPE_CHOICES, default='text', db_column='content_type')
    duration_minutes = models.PositiveIntegerField(blank=True, null=True, db_column='duration_minutes')
    video_url = models.CharField(max_length=1000, blank=True, null=True, db_column='video_url')

    class Meta:
        db_table = 'modules'
        ordering = ['course', 'sequence_order']
        unique_together = [('course', 'sequence_order')]

    @property
    def requires_video(self):
        return self.content_type in self.VIDEO_CONTENT_TYPES

    def __str__(self):
        return f"{self.sequence_order}. {self.title}"


class Quiz(models.Model):
    """Maps to quizzes table - module is null for standalone quizzes"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, db_column='id')
    module = models.ForeignKey(
        Module, on_delete=models.CASCADE, null=True, blank=True,
        related_name='quizzes', db_column='module_id',
    )
    title = models.CharField(max_length=255, db_column='title')
    passing_score = models.IntegerField(
        default=70, validators=[MinValueValidator(0), MaxValueValidator(100)], db_column='passing_score',
    )
    max_attempts = models.IntegerField(default=1, validators=[MinValueValidator(1)], db_column='max_attempts')
    time_limit_minutes = models.IntegerField(blank=True, null=True, db_column='time_limit_minutes')
    created_at = models.DateTimeField(default=timezone.now, db_column='created_at')

    class Meta:
        db_table = 'quizzes'
        verbose_name_plural = 'quizzes'

    @property
    def course_id(self):
        return self.module.course_id if self.module_id else None

    def __str__(self):
        return self.title


class Question(models.Model):
    """Maps to questions table"""
    QUESTION_TYPES = [
        ('multiple_choice', 'Multiple Choice'),
        ('true_false', 'True/False'),
        ('short_answer', 'Short Answer'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, db_column='id')
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='questions', db_column='quiz_id')
    type = models.CharField(max_length=30, choices=QUESTION_TYPES, db_column='type')
    text = models.TextField(db_column='text')
    # choice list, or short-answer matching options
    options = models.JSONField(default=list, blank=True, db_column='options')
    correct_answer = models.TextField(blank=True, default='', db_column='correct_answer')
    points = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)], db_column='points')
    order = models.IntegerField(default=0, db_column='order')
    explanation = models.TextField(blank=True, null=True, db_column='explanation')

    class Meta:
        db_table = 'questions'
        ordering = ['quiz', 'order']

    def __str__(self):
        return self.text[:80]
